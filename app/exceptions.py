"""
tagsync - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class TagSyncException(Exception):
    """Base exception for tagsync"""
    status_code = 500

    def __init__(self, message: str, code: str = "TAGSYNC_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'success': False,
            'code': self.code,
            'message': self.message
        }


class PostTagException(TagSyncException):
    """A tag write on one post went wrong"""

    def __init__(self, message: str, code: str, post_id=None):
        super().__init__(message, code=code)
        self.post_id = post_id

    def to_dict(self):
        data = super().to_dict()
        if self.post_id is not None:
            data['post_id'] = self.post_id
        return data


class TagMaintenanceException(PostTagException):
    """A tag write was rolled back and abandoned; tags may be stale"""
    status_code = 503

    def __init__(self, message: str, post_id=None):
        super().__init__(message, code="TAG_MAINTENANCE_ERROR", post_id=post_id)
        logger.warning(f"Tag maintenance failed for post {post_id}: {message}")


class TagConsistencyException(PostTagException):
    """Rollback failed; both tag representations may disagree"""

    def __init__(self, message: str, post_id=None):
        super().__init__(message, code="TAG_INCONSISTENT", post_id=post_id)
        logger.critical(f"Tag state inconsistent for post {post_id}, manual reconciliation required: {message}")


class ValidationException(TagSyncException):
    """Validation-related exceptions"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


class NotFoundException(TagSyncException):
    """Missing post, comment or tag"""
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code="NOT_FOUND")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Unknown routes, wrong methods and other framework errors"""
        return jsonify({
            'success': False,
            'code': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code
