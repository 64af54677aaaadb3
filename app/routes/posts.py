"""
Post Routes - create posts and manage their tags
"""

from flask import Blueprint, current_app, request
from api_responses import success_response, tags_response, handle_api_errors
from exceptions import NotFoundException, ValidationException
from repositories.post_repository import PostRepository
from repositories.posttag_repository import PostTagRepository
from utils import format_datetime

posts_bp = Blueprint("posts", __name__, url_prefix="/api")


def serialize_post(post):
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "tags": post.tags,
        "created_at": format_datetime(post.created_at),
    }


@posts_bp.route("/posts", methods=["POST"])
@handle_api_errors
def create_post():
    """Create a post"""
    data = request.get_json(silent=True) or {}
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationException("Post title is required")
    post = PostRepository.create(title=title, content=data.get("content"))
    return success_response(data=serialize_post(post), status_code=201)


@posts_bp.route("/posts/<int:post_id>")
@handle_api_errors
def get_post(post_id):
    """Get a single post"""
    post = PostRepository.get_by_id(post_id)
    if not post:
        raise NotFoundException(f"Post with ID '{post_id}' not found")
    return success_response(data=serialize_post(post))


@posts_bp.route("/posts/<int:post_id>/tags")
@handle_api_errors
def get_post_tags(post_id):
    """Both tag representations of a post"""
    tags = PostRepository.read_tags(post_id)
    associated = PostTagRepository.get_tag_names_for_post(post_id)
    return success_response(
        data={
            "tags": tags,
            "associated": associated,
            "consistent": set(tags) == set(associated),
        }
    )


@posts_bp.route("/posts/<int:post_id>/tags", methods=["POST"])
@handle_api_errors
def add_post_tags(post_id):
    """Attach manually chosen tags to a post"""
    data = request.get_json(silent=True) or {}
    labels = data.get("tags")
    if not isinstance(labels, list):
        raise ValidationException("'tags' must be a list of labels")
    if not PostRepository.exists(post_id):
        raise NotFoundException(f"Post with ID '{post_id}' not found")

    tags = current_app.extensions["tag_service"].add_post_tags(post_id, labels)
    if tags is None:
        tags = PostRepository.read_tags(post_id)
    return tags_response(tags)
