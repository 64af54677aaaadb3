"""
Model: Tag
"""

from db import db, now_utc


class Tag(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # Canonical label, marker included and lower-cased (e.g. "#alpha")
    name = db.Column(db.String(64), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=now_utc)
