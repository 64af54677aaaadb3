"""
Tag Routes - read-only views of the normalized tag store
"""

from flask import Blueprint, current_app, request
from api_responses import success_response, handle_api_errors, paginated_response
from constants import DEFAULT_TAGS_LIMIT, POPULAR_TAGS_LIMIT, SEARCH_TAGS_LIMIT
from repositories.post_repository import PostRepository
from repositories.tag_repository import TagRepository
from routes.posts import serialize_post
from utils import format_datetime

tags_bp = Blueprint("tags", __name__, url_prefix="/api")


def _int_arg(name, default, minimum=1, maximum=500):
    value = request.args.get(name, default, type=int)
    if value is None or value < minimum:
        return default
    return min(value, maximum)


@tags_bp.route("/tags")
@handle_api_errors
def get_tags():
    """All tags with their post counts"""
    rows = TagRepository.get_all(limit=_int_arg("limit", DEFAULT_TAGS_LIMIT))
    return success_response(
        data=[
            {"name": name, "post_count": post_count, "created_at": format_datetime(created_at)}
            for name, created_at, post_count in rows
        ]
    )


@tags_bp.route("/tags/popular")
@handle_api_errors
def get_popular_tags():
    """Most used tags"""
    rows = TagRepository.get_popular(limit=_int_arg("limit", POPULAR_TAGS_LIMIT))
    return success_response(data=[{"name": name, "post_count": post_count} for name, post_count in rows])


@tags_bp.route("/tags/search")
@handle_api_errors
def search_tags():
    """Substring search over tag labels"""
    marker = current_app.extensions["tag_service"].marker
    rows = TagRepository.search(request.args.get("q", ""), limit=_int_arg("limit", SEARCH_TAGS_LIMIT), marker=marker)
    return success_response(data=[{"name": name, "post_count": post_count} for name, post_count in rows])


@tags_bp.route("/tags/<path:name>/posts")
@handle_api_errors
def get_posts_by_tag(name):
    """Posts carrying a tag; the marker may be omitted from the URL"""
    marker = current_app.extensions["tag_service"].marker
    name = name.lower()
    if not name.startswith(marker):
        name = marker + name

    page = _int_arg("page", 1, maximum=10**6)
    per_page = _int_arg("per_page", DEFAULT_TAGS_LIMIT, maximum=200)
    posts, total = PostRepository.get_by_tag(name, limit=per_page, offset=(page - 1) * per_page)
    return paginated_response([serialize_post(p) for p in posts], total, page, per_page)
