"""
Model: Post
"""

from db import db, now_utc


class Post(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text)
    # Denormalized copy of the post's tag labels. NULL means "no tags", never [].
    tags = db.Column(db.JSON(none_as_null=True), nullable=True)
    created_at = db.Column(db.DateTime, default=now_utc, index=True)

    comments = db.relationship(
        "Comment",
        backref="post",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
    )
    tag_links = db.relationship("PostTag", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
