"""
System Routes - health and build information
"""

from flask import Blueprint
from sqlalchemy import text
from db import db, logger
from api_responses import success_response, error_response, handle_api_errors, ErrorCode
from constants import BUILD_VERSION

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.route("/health", methods=["GET"])
@handle_api_errors
def health_check_api():
    """Liveness plus a database round trip"""
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        return error_response(ErrorCode.SERVICE_UNAVAILABLE, "Database unavailable", 503)
    return success_response(data={"status": "ok", "build_version": BUILD_VERSION})
