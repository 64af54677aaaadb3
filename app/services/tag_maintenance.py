"""
Operator tooling for tag state: consistency checks, repair and orphan pruning.

None of this runs on the request path. Repairs go through TagService so the
single-writer rule for tags holds here too.
"""
import structlog

from db import transaction
from repositories.comment_repository import CommentRepository
from repositories.post_repository import PostRepository
from repositories.posttag_repository import PostTagRepository
from repositories.tag_repository import TagRepository
from exceptions import TagSyncException

logger = structlog.get_logger('tag_maintenance')


def find_inconsistent_posts():
    """Ids of posts whose Post.tags disagrees with their associations"""
    associations = PostTagRepository.get_tag_names_by_post()
    inconsistent = []
    for post_id, tags in PostRepository.get_tag_fields():
        if set(tags or []) != associations.get(post_id, set()):
            inconsistent.append(post_id)
    return inconsistent


def reconcile_posts(tag_service, post_ids=None, from_comments=False):
    """
    Repair posts, by default every inconsistent one.

    The Post.tags field is authoritative unless `from_comments` is set, in
    which case tags are recomputed from the comments and manual tags are
    dropped. Returns ({post_id: tags}, {post_id: error}).
    """
    if post_ids is None:
        post_ids = find_inconsistent_posts()

    repaired, failed = {}, {}
    for post_id in post_ids:
        try:
            if from_comments:
                repaired[post_id] = tag_service.rebuild_from_comments(
                    post_id, lambda post_id=post_id: CommentRepository.get_contents_by_post(post_id)
                )
            else:
                repaired[post_id] = tag_service.reconcile_post(post_id)
        except TagSyncException as e:
            logger.error(f"Could not reconcile tags of post {post_id}: {e.message}")
            failed[post_id] = e.message
    if repaired:
        logger.info(f"Reconciled tags of {len(repaired)} post(s)")
    return repaired, failed


def prune_orphan_tags():
    """Delete tags no post carries anymore; returns their labels"""
    with transaction():
        names = TagRepository.delete_orphans()
    if names:
        logger.info(f"Removed {len(names)} unused tag(s): {', '.join(names)}")
    else:
        logger.info("No unused tags found")
    return names
