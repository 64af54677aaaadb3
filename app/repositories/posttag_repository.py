"""
Repository for PostTag database operations

Nothing in here commits: callers own the transaction.
"""

from collections import defaultdict
from sqlalchemy import delete, select
from db import db, conflict_free_insert
from models.tag import Tag
from models.posttag import PostTag


class PostTagRepository:
    """Repository for PostTag database operations"""

    @staticmethod
    def get_tag_ids(post_id):
        """Tag ids currently associated with a post"""
        return set(db.session.execute(select(PostTag.tag_id).where(PostTag.post_id == post_id)).scalars())

    @staticmethod
    def get_tag_names_for_post(post_id):
        """Labels on the normalized side, sorted"""
        rows = db.session.execute(
            select(Tag.name).join(PostTag, PostTag.tag_id == Tag.id).where(PostTag.post_id == post_id).order_by(Tag.name)
        )
        return list(rows.scalars())

    @staticmethod
    def get_tag_names_by_post():
        """{post_id: set(labels)} for every post with at least one association"""
        rows = db.session.execute(select(PostTag.post_id, Tag.name).join(Tag, PostTag.tag_id == Tag.id))
        names = defaultdict(set)
        for post_id, name in rows:
            names[post_id].add(name)
        return names

    @staticmethod
    def get_post_ids_by_tag(name):
        """Ids of posts carrying a tag"""
        rows = db.session.execute(
            select(PostTag.post_id).join(Tag, PostTag.tag_id == Tag.id).where(Tag.name == name).order_by(PostTag.post_id)
        )
        return list(rows.scalars())

    @staticmethod
    def set_associations(post_id, tag_ids):
        """
        Make the post's associations exactly `tag_ids`.

        Idempotent: a second call with the same set issues no writes.
        Returns (added, removed) tag id sets.
        """
        tag_ids = set(tag_ids)
        existing = PostTagRepository.get_tag_ids(post_id)
        removed = existing - tag_ids
        added = tag_ids - existing

        if removed:
            db.session.execute(
                delete(PostTag)
                .where(PostTag.post_id == post_id, PostTag.tag_id.in_(removed))
                .execution_options(synchronize_session=False)
            )

        if added:
            rows = [{"post_id": post_id, "tag_id": tag_id} for tag_id in sorted(added)]
            stmt = conflict_free_insert(PostTag.__table__)
            if stmt is None:
                stmt = PostTag.__table__.insert()
            db.session.execute(stmt, rows)

        return added, removed
