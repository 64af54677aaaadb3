"""
Comment Routes - comment lifecycle endpoints

Tag maintenance failures never turn into error responses; they show up as
`tags_stale` in the payload.
"""

from flask import Blueprint, current_app, request
from api_responses import success_response, tags_response, handle_api_errors
from utils import format_datetime

comments_bp = Blueprint("comments", __name__, url_prefix="/api")


def _comment_service():
    return current_app.extensions["comment_service"]


def serialize_comment(comment):
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author": comment.author,
        "content": comment.content,
        "is_edited": bool(comment.is_edited),
        "created_at": format_datetime(comment.created_at),
        "updated_at": format_datetime(comment.updated_at),
    }


def _result_response(result, **kwargs):
    data = {"comment": serialize_comment(result.comment)} if result.comment is not None else None
    return tags_response(result.tags, result.tags_stale, data=data, **kwargs)


@comments_bp.route("/posts/<int:post_id>/comments")
@handle_api_errors
def list_comments(post_id):
    """Comments of a post, oldest first"""
    comments = _comment_service().list_comments(post_id)
    return success_response(data=[serialize_comment(c) for c in comments])


@comments_bp.route("/posts/<int:post_id>/comments", methods=["POST"])
@handle_api_errors
def create_comment(post_id):
    """Create a comment; its hashtags are added to the post"""
    data = request.get_json(silent=True) or {}
    result = _comment_service().create_comment(post_id, data.get("content"), author=data.get("author"))
    return _result_response(result, status_code=201)


@comments_bp.route("/comments/<int:comment_id>", methods=["PUT"])
@handle_api_errors
def update_comment(comment_id):
    """Edit a comment"""
    data = request.get_json(silent=True) or {}
    result = _comment_service().update_comment(comment_id, data.get("content"))
    return _result_response(result)


@comments_bp.route("/comments/<int:comment_id>", methods=["DELETE"])
@handle_api_errors
def delete_comment(comment_id):
    """Delete a comment; tags only it provided leave the post"""
    result = _comment_service().delete_comment(comment_id)
    return _result_response(result, message="Comment deleted")
