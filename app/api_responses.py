"""
Response envelope shared by the API blueprints.

Every body carries `success` and `code`. Responses from endpoints that touch
a post's tags also carry `tags_stale` at the top level, so clients can tell a
saved comment whose tag update is still pending apart from a clean write.
"""

from flask import jsonify
from functools import wraps
import structlog

from exceptions import TagSyncException

logger = structlog.get_logger('api')


class ErrorCode:
    SUCCESS = "SUCCESS"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


def success_response(data=None, message=None, status_code=200):
    response = {"code": ErrorCode.SUCCESS, "success": True}
    if data is not None:
        response["data"] = data
    if message:
        response["message"] = message
    return jsonify(response), status_code


def tags_response(tags, tags_stale=False, data=None, message=None, status_code=200):
    """
    Success envelope for a write that maintained a post's tags.

    `tags` is the post's tag list after the write, or None when it could not
    be determined because maintenance failed.
    """
    response = {
        "code": ErrorCode.SUCCESS,
        "success": True,
        "tags_stale": tags_stale,
        "data": dict(data or {}, tags=tags, tags_stale=tags_stale),
    }
    if message:
        response["message"] = message
    return jsonify(response), status_code


def error_response(error_code, message, status_code):
    return jsonify({"code": error_code, "success": False, "message": message}), status_code


def handle_api_errors(f):
    """
    Turn tagsync exceptions into error envelopes with their own status and
    code; anything else becomes a logged 500.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except TagSyncException as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception as e:
            logger.error(f"Unhandled exception in {f.__name__}: {e}", exc_info=True)
            return error_response(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred", 500)

    return wrapper


def paginated_response(items, total, page, per_page):
    has_more = page * per_page < total
    return jsonify(
        {
            "code": ErrorCode.SUCCESS,
            "success": True,
            "data": items,
            "pagination": {
                "total": total,
                "page": page,
                "per_page": per_page,
                "total_pages": (total + per_page - 1) // per_page,
                "has_more": has_more,
                "next_page": page + 1 if has_more else None,
                "prev_page": page - 1 if page > 1 else None,
            },
        }
    ), 200
