"""
Model: PostTag
"""

from db import db


class PostTag(db.Model):
    post_id = db.Column(db.Integer, db.ForeignKey("post.id", ondelete="CASCADE"), primary_key=True)
    tag_id = db.Column(db.Integer, db.ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True)

    tag = db.relationship("Tag", lazy="joined")

    __table_args__ = (
        # "all posts with tag X"
        db.Index("idx_post_tag_tag", "tag_id"),
    )
