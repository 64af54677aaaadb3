"""
Comment lifecycle.

The comment write is the primary operation and is committed first. Tag
maintenance follows through TagService and is best effort: a failure there is
logged and reported as `tags_stale`, never raised to the caller.
"""
from collections import namedtuple

import structlog

from exceptions import NotFoundException, ValidationException
from repositories.comment_repository import CommentRepository
from repositories.post_repository import PostRepository

logger = structlog.get_logger('comments')

CommentResult = namedtuple("CommentResult", ["comment", "tags", "tags_stale"])


def _clean_content(content):
    if not isinstance(content, str) or not content.strip():
        raise ValidationException("Comment content is required")
    return content.strip()


class CommentService:
    """Create, edit and delete comments, keeping post tags in step"""

    def __init__(self, tag_service):
        self.tag_service = tag_service

    def list_comments(self, post_id):
        if not PostRepository.exists(post_id):
            raise NotFoundException(f"Post with ID '{post_id}' not found")
        return CommentRepository.get_by_post(post_id)

    def create_comment(self, post_id, content, author=None):
        content = _clean_content(content)
        if not PostRepository.exists(post_id):
            raise NotFoundException(f"Post with ID '{post_id}' not found")

        comment = CommentRepository.create(post_id=post_id, content=content, author=author)
        tags, stale = self._maintain_tags(
            "create", post_id, lambda: self.tag_service.on_comment_created(post_id, content)
        )
        return CommentResult(comment, tags, stale)

    def update_comment(self, comment_id, content):
        content = _clean_content(content)
        comment = CommentRepository.update_content(comment_id, content)
        if comment is None:
            raise NotFoundException(f"Comment with ID '{comment_id}' not found")

        post_id = comment.post_id
        tags, stale = self._maintain_tags(
            "update", post_id, lambda: self.tag_service.on_comment_updated(post_id, content)
        )
        return CommentResult(comment, tags, stale)

    def delete_comment(self, comment_id):
        snapshot = CommentRepository.delete(comment_id)
        if snapshot is None:
            raise NotFoundException(f"Comment with ID '{comment_id}' not found")

        post_id, content = snapshot
        tags, stale = self._maintain_tags(
            "delete",
            post_id,
            lambda: self.tag_service.on_comment_deleted(
                post_id, content, lambda: CommentRepository.get_contents_by_post(post_id)
            ),
        )
        return CommentResult(None, tags, stale)

    def _maintain_tags(self, action, post_id, update):
        """Run a tag update; returns (tags, stale)"""
        try:
            tags = update()
            if tags is None:
                tags = PostRepository.read_tags(post_id)
        except Exception as e:
            logger.error(f"Tag maintenance after comment {action} failed for post {post_id}: {e}", exc_info=True)
            return None, True
        return tags, False
