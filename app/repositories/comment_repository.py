"""
Repository for Comment database operations
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from db import db, now_utc
from models.comment import Comment


class CommentRepository:
    """Repository for Comment database operations"""

    @staticmethod
    def get_by_id(id):
        """Get Comment by ID"""
        return db.session.get(Comment, id)

    @staticmethod
    def get_by_post(post_id):
        """Comments of a post, oldest first"""
        return Comment.query.filter_by(post_id=post_id).order_by(Comment.created_at, Comment.id).all()

    @staticmethod
    def get_contents_by_post(post_id):
        """Current text of every live comment on a post"""
        stmt = select(Comment.content).where(Comment.post_id == post_id)
        return list(db.session.execute(stmt).scalars())

    @staticmethod
    def create(**kwargs):
        """Create new Comment record"""
        try:
            item = Comment(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def update_content(id, content):
        """Replace a comment's text and flag it as edited"""
        item = db.session.get(Comment, id)
        if not item:
            return None

        try:
            item.content = content
            item.is_edited = True
            item.updated_at = now_utc()
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def delete(id):
        """Delete Comment record, returning (post_id, content) as they were"""
        item = db.session.get(Comment, id)
        if not item:
            return None

        snapshot = (item.post_id, item.content)
        try:
            db.session.delete(item)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
        return snapshot
