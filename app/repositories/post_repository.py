"""
Repository for Post database operations

read_tags/write_tags/lock are the accessor for the denormalized tag field
and never commit; create/delete are primary operations and do.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from db import db, dialect_name
from exceptions import NotFoundException
from models.post import Post
from models.posttag import PostTag
from models.tag import Tag


class PostRepository:
    """Repository for Post database operations"""

    @staticmethod
    def get_by_id(id):
        """Get Post by ID"""
        return db.session.get(Post, id)

    @staticmethod
    def exists(id):
        """Check a post exists without loading it"""
        return db.session.execute(select(Post.id).where(Post.id == id)).first() is not None

    @staticmethod
    def lock(id):
        """
        Load the post with a row lock held until the transaction ends.

        Every tag writer of a post goes through here first, so concurrent
        read-compute-write sequences on the same post are serialized.
        """
        if dialect_name() == "sqlite":
            # No row locks on SQLite: take the database write lock before reading
            db.session.execute(
                update(Post.__table__).where(Post.__table__.c.id == id).values(title=Post.__table__.c.title)
            )
        post = db.session.execute(
            select(Post).where(Post.id == id).with_for_update().execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundException(f"Post with ID '{id}' not found")
        return post

    @staticmethod
    def read_tags(id):
        """Denormalized tag list; an absent field reads as []"""
        post = PostRepository.get_by_id(id)
        if post is None:
            raise NotFoundException(f"Post with ID '{id}' not found")
        return list(post.tags or [])

    @staticmethod
    def write_tags(id, tags):
        """Store the tag list, clearing the field to NULL when there are none"""
        post = PostRepository.get_by_id(id)
        if post is None:
            raise NotFoundException(f"Post with ID '{id}' not found")
        post.tags = list(tags) if tags else None
        db.session.flush()
        return post.tags

    @staticmethod
    def get_tag_fields():
        """(post_id, tags) for every post"""
        return db.session.execute(select(Post.id, Post.tags).order_by(Post.id)).all()

    @staticmethod
    def get_by_tag(name, limit=50, offset=0):
        """Posts carrying a tag, newest first, plus the total count"""
        query = (
            Post.query.join(PostTag, PostTag.post_id == Post.id)
            .join(Tag, PostTag.tag_id == Tag.id)
            .filter(Tag.name == name)
        )
        total = query.count()
        posts = query.order_by(Post.created_at.desc(), Post.id.desc()).offset(offset).limit(limit).all()
        return posts, total

    @staticmethod
    def create(**kwargs):
        """Create new Post record"""
        try:
            item = Post(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def delete(id):
        """Delete Post record with its comments and tag associations"""
        item = db.session.get(Post, id)
        if not item:
            return False

        db.session.delete(item)
        db.session.commit()
        return True
