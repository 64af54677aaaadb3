"""
Repository for Tag database operations

Nothing in here commits: callers own the transaction.
"""

import logging
from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from db import db, conflict_free_insert
from models.tag import Tag
from models.posttag import PostTag

logger = logging.getLogger("main")


class TagRepository:
    """Repository for Tag database operations"""

    @staticmethod
    def get_by_name(name):
        """Get Tag by canonical label"""
        return Tag.query.filter_by(name=name).first()

    @staticmethod
    def get_ids_by_names(names):
        """Map existing labels to tag ids; unknown labels are left out"""
        if not names:
            return {}
        rows = db.session.execute(select(Tag.name, Tag.id).where(Tag.name.in_(list(names)))).all()
        return {name: tag_id for name, tag_id in rows}

    @staticmethod
    def ensure_tags(labels):
        """
        Return {label: tag_id} for every label, creating missing tags.

        Creation is insert-or-fetch: a concurrent creator of the same label
        wins silently and its id is returned.
        """
        labels = sorted(set(labels))
        if not labels:
            return {}

        stmt = conflict_free_insert(Tag.__table__)
        if stmt is not None:
            db.session.execute(stmt, [{"name": label} for label in labels])
        else:
            existing = TagRepository.get_ids_by_names(labels)
            for label in labels:
                if label in existing:
                    continue
                try:
                    with db.session.begin_nested():
                        db.session.add(Tag(name=label))
                except IntegrityError:
                    logger.debug(f"Tag {label} created concurrently, reusing it")

        ids = TagRepository.get_ids_by_names(labels)
        missing = set(labels) - set(ids)
        if missing:
            raise LookupError(f"Tags could not be created: {sorted(missing)}")
        return ids

    @staticmethod
    def get_all(limit=None):
        """All tags with their post counts, most used first"""
        post_count = func.count(PostTag.post_id).label("post_count")
        query = (
            db.session.query(Tag.name, Tag.created_at, post_count)
            .outerjoin(PostTag, PostTag.tag_id == Tag.id)
            .group_by(Tag.id, Tag.name, Tag.created_at)
            .order_by(desc("post_count"), Tag.name)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_popular(limit=10):
        """Tags attached to at least one post, most used first"""
        post_count = func.count(PostTag.post_id).label("post_count")
        return (
            db.session.query(Tag.name, post_count)
            .join(PostTag, PostTag.tag_id == Tag.id)
            .group_by(Tag.id, Tag.name)
            .order_by(desc("post_count"), Tag.name)
            .limit(limit)
            .all()
        )

    @staticmethod
    def search(term, limit=10, marker="#"):
        """Case-insensitive substring search on tag labels"""
        term = (term or "").strip().lower().lstrip(marker)
        if not term:
            return []
        post_count = func.count(PostTag.post_id).label("post_count")
        return (
            db.session.query(Tag.name, post_count)
            .outerjoin(PostTag, PostTag.tag_id == Tag.id)
            .filter(Tag.name.icontains(term, autoescape=True))
            .group_by(Tag.id, Tag.name)
            .order_by(desc("post_count"), Tag.name)
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_orphans():
        """Tags no post refers to"""
        return (
            Tag.query.outerjoin(PostTag, PostTag.tag_id == Tag.id)
            .filter(PostTag.tag_id.is_(None))
            .order_by(Tag.name)
            .all()
        )

    @staticmethod
    def delete_orphans():
        """Delete tags no post refers to and return their labels"""
        orphans = TagRepository.get_orphans()
        if not orphans:
            return []
        names = [tag.name for tag in orphans]
        still_unused = ~select(PostTag.tag_id).where(PostTag.tag_id == Tag.id).exists()
        db.session.execute(
            delete(Tag)
            .where(Tag.id.in_([tag.id for tag in orphans]), still_unused)
            .execution_options(synchronize_session=False)
        )
        return names
