"""
Tag derivation and consistency engine.

A post's tags live twice: inline on the post (`Post.tags`) and in the
normalized `tag`/`post_tag` tables. TagService is the only writer of either
side. Each operation locks the post row, recomputes the authoritative tag list
from the current state plus the change being applied, and writes both
representations in a single transaction.
"""
import time

import structlog
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from constants import TAG_MARKER, MAX_TAG_LENGTH, MAX_MANUAL_TAGS, TAG_RETRY_ATTEMPTS, TAG_RETRY_DELAY
from db import transaction
from exceptions import TagMaintenanceException
from repositories.post_repository import PostRepository
from repositories.posttag_repository import PostTagRepository
from repositories.tag_repository import TagRepository
from tags import extract_tags, merge_tags, process_tags

logger = structlog.get_logger('tags')


class TagService:
    """Keeps Post.tags and the post/tag associations in agreement"""

    def __init__(
        self,
        marker=TAG_MARKER,
        max_length=MAX_TAG_LENGTH,
        max_manual_tags=MAX_MANUAL_TAGS,
        retry_attempts=TAG_RETRY_ATTEMPTS,
        retry_delay=TAG_RETRY_DELAY,
    ):
        self.marker = marker
        self.max_length = max_length
        self.max_manual_tags = max_manual_tags
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay

    @classmethod
    def from_settings(cls, settings):
        tags = settings.get("tags", {})
        return cls(
            marker=tags.get("marker", TAG_MARKER),
            max_length=tags.get("max_length", MAX_TAG_LENGTH),
            max_manual_tags=tags.get("max_manual_tags", MAX_MANUAL_TAGS),
            retry_attempts=tags.get("retry_attempts", TAG_RETRY_ATTEMPTS),
            retry_delay=tags.get("retry_delay", TAG_RETRY_DELAY),
        )

    # Comment lifecycle entry points

    def on_comment_created(self, post_id, new_text):
        """
        Add the hashtags of a new comment to its post.

        Returns the post's resulting tag list, or None when the comment has
        no hashtags and nothing was touched.
        """
        added = extract_tags(new_text, self.marker)
        if not added:
            return None
        return self._run("comment_created", post_id, lambda: self._add(post_id, added))

    def on_comment_updated(self, post_id, new_text):
        """
        Add the hashtags of an edited comment to its post.

        Edits only ever add tags. Whatever the previous version contributed
        stays until the comment is deleted.
        """
        added = extract_tags(new_text, self.marker)
        if not added:
            return None
        return self._run("comment_updated", post_id, lambda: self._add(post_id, added))

    def on_comment_deleted(self, post_id, deleted_text, sibling_texts):
        """
        Drop the tags only the deleted comment was providing.

        `sibling_texts` holds the content of every comment still on the post.
        It may also be a zero-argument callable; it is then called once the
        post is locked, so the siblings cannot change under the computation.
        """
        deleted = extract_tags(deleted_text, self.marker)
        if not deleted:
            return None
        return self._run("comment_deleted", post_id, lambda: self._remove(post_id, deleted, sibling_texts))

    # Other writers

    def add_post_tags(self, post_id, labels):
        """Attach manually chosen labels to a post"""
        added = process_tags(labels, self.marker, self.max_length, self.max_manual_tags)
        if not added:
            return None
        return self._run("manual_tags", post_id, lambda: self._add(post_id, added))

    def reconcile_post(self, post_id):
        """Rewrite the associations of a post from its Post.tags field"""
        return self._run("reconcile", post_id, lambda: self._replace(post_id, None))

    def rebuild_from_comments(self, post_id, comment_texts):
        """
        Recompute a post's tags from scratch out of its comments.

        Manual tags are lost. `comment_texts` may be a callable, as in
        on_comment_deleted.
        """
        return self._run("rebuild", post_id, lambda: self._replace(post_id, comment_texts))

    # Transaction bodies, always run inside _run

    def _add(self, post_id, added):
        post = PostRepository.lock(post_id)
        union = merge_tags(post.tags, added)
        self._write(post_id, union)
        return union

    def _remove(self, post_id, deleted, sibling_texts):
        post = PostRepository.lock(post_id)
        current = list(post.tags or [])

        if callable(sibling_texts):
            sibling_texts = sibling_texts()
        still_referenced = set()
        for text in sibling_texts:
            still_referenced |= extract_tags(text, self.marker)

        canonical = merge_tags(current, ())
        kept = [tag for tag in canonical if tag not in deleted or tag in still_referenced]
        if len(kept) == len(canonical):
            return current

        self._write(post_id, kept)
        return kept

    def _replace(self, post_id, comment_texts):
        post = PostRepository.lock(post_id)
        if comment_texts is None:
            tags = merge_tags(post.tags, ())
        else:
            if callable(comment_texts):
                comment_texts = comment_texts()
            found = set()
            for text in comment_texts:
                found |= extract_tags(text, self.marker)
            tags = merge_tags([], found)
        self._write(post_id, tags)
        return tags

    def _write(self, post_id, tags):
        ids = TagRepository.ensure_tags(tags)
        added, removed = PostTagRepository.set_associations(post_id, ids.values())
        PostRepository.write_tags(post_id, tags)
        logger.debug(
            "tags_written", post_id=post_id, tags=tags,
            associations_added=len(added), associations_removed=len(removed),
        )

    def _run(self, operation, post_id, work):
        """
        Run `work` in its own transaction, retrying transient storage errors.

        Each attempt starts from a fresh transaction and re-reads the post.
        Gives up with TagMaintenanceException once retries are exhausted or
        on any other database error; nothing is left half-applied.
        """
        log = logger.bind(post_id=post_id, operation=operation)
        attempt = 0
        while True:
            attempt += 1
            try:
                with transaction():
                    return work()
            except OperationalError as e:
                if attempt >= self.retry_attempts:
                    log.error("tag_write_abandoned", attempts=attempt, error=str(e))
                    raise TagMaintenanceException(
                        f"{operation} failed after {attempt} attempts: {e}", post_id=post_id
                    ) from e
                log.warning("tag_write_retry", attempt=attempt, error=str(e))
                time.sleep(self.retry_delay * attempt)
            except SQLAlchemyError as e:
                log.error("tag_write_failed", error=str(e))
                raise TagMaintenanceException(f"{operation} failed: {e}", post_id=post_id) from e
