"""
tagsync - comment-derived post tags
Application Factory and initialization
"""
import logging

import flask.cli
flask.cli.show_server_banner = lambda *args: None

from flask import Flask
import structlog

from constants import BUILD_VERSION
from settings import load_settings
from db import db, init_db
from exceptions import register_exception_handlers
from utils import configure_logging
from services.tag_service import TagService
from services.comment_service import CommentService

# Routes
from routes.posts import posts_bp
from routes.comments import comments_bp
from routes.tags import tags_bp
from routes.system import system_bp

logger = structlog.get_logger('main')


def create_app(test_config=None, settings=None):
    """Build the Flask app; `test_config` overrides Flask config keys"""
    configure_logging()
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = settings["database"]["url"]
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    if test_config:
        app.config.update(test_config)

    db.init_app(app)
    init_db(app)

    tag_service = TagService.from_settings(settings)
    app.extensions["tag_service"] = tag_service
    app.extensions["comment_service"] = CommentService(tag_service)

    register_exception_handlers(app)
    app.register_blueprint(posts_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(tags_bp)
    app.register_blueprint(system_bp)

    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logger.info(f"tagsync {BUILD_VERSION} ready", database=app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=8465)
