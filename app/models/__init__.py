"""
Models package

Each table lives in its own module:
- post.py: the parent content item, carrying the denormalized tag list
- comment.py: child entities whose text is scanned for hashtags
- tag.py / posttag.py: the normalized tag store

Usage:
    from models import Post, Comment, Tag, PostTag
"""

from .post import Post
from .comment import Comment
from .tag import Tag
from .posttag import PostTag

__all__ = [
    "Post",
    "Comment",
    "Tag",
    "PostTag",
]
