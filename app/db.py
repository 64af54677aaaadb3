from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event, inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager
import logging
from utils import now_utc
from exceptions import TagConsistencyException

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()

# Dialects that support INSERT ... ON CONFLICT DO NOTHING
_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def dialect_name(session=None):
    session = session or db.session
    return session.get_bind().dialect.name


def conflict_free_insert(table, session=None):
    """
    Return an INSERT construct with ON CONFLICT DO NOTHING for the current
    dialect, or None when the backend has no such clause.
    """
    insert = _UPSERT_DIALECTS.get(dialect_name(session))
    if insert is None:
        return None
    return insert(table).on_conflict_do_nothing()


@contextmanager
def transaction(session=None):
    """
    Unit of work covering every statement issued inside the block.

    Commits on success. Any exception, including cancellation, rolls back and
    propagates. A failed rollback leaves the database in an unknown state and
    is raised as TagConsistencyException.
    """
    session = session or db.session
    try:
        yield session
        session.commit()
    except BaseException as e:
        try:
            session.rollback()
        except SQLAlchemyError as rollback_error:
            raise TagConsistencyException(
                f"Rollback failed after {type(e).__name__}: {rollback_error}"
            ) from rollback_error
        raise


def init_db(app):
    with app.app_context():
        # Ensure foreign keys, WAL mode, and timeout are set when connection is opened
        @event.listens_for(db.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            import sqlite3
            if not isinstance(dbapi_connection, sqlite3.Connection):
                return

            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            # Enable WAL mode for better concurrent access
            cursor.execute("PRAGMA journal_mode=WAL;")
            # Wait on writer locks instead of failing immediately
            cursor.execute("PRAGMA busy_timeout=30000;")
            cursor.close()

        # Importing the models registers their tables on db.metadata
        import models  # noqa: F401

        inspector = inspect(db.engine)
        if not inspector.has_table("post_tag"):
            logger.info("Initializing database tables...")
            db.create_all()
            logger.info("Database created.")
