"""
SQLAlchemy instance and connection pool lifecycle.

The pool is created by ``init_db`` when the application is built and released
by ``dispose_db`` at process exit. List endpoints run under a query deadline
(``with_query_timeout``): past it the running statement is interrupted and
the view answers QueryTimeoutError.
"""

from __future__ import annotations

import atexit
import functools
import logging
import sqlite3
import time

from flask import current_app, g, has_app_context
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from error_handler import QueryTimeoutError

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def init_db(app) -> None:
    """Bind the extension to the app and register pool teardown."""
    db.init_app(app)

    with app.app_context():
        engine = db.engine
        app.logger.info(f"Database engine ready: {engine.url.render_as_string()}")

    # Sessions are scoped to the app context, the pool to the process
    atexit.register(dispose_db, app)


def dispose_db(app) -> None:
    """Close every pooled connection of the app's engines."""
    try:
        with app.app_context():
            for engine in db.engines.values():
                engine.dispose()
    except RuntimeError as e:
        # Interpreter shutdown may already have torn the app down
        logger.debug(f"dispose_db skipped: {e}")


# SQLite checks the deadline every this many VM instructions
PROGRESS_STEPS = 1000

# server-side cancellation: Postgres query_canceled, MySQL max_execution_time
PG_QUERY_CANCELED = "57014"
MYSQL_EXECUTION_TIMEOUT = 3024


def _deadline_passed() -> bool:
    if not has_app_context():
        return False
    deadline = g.get("query_deadline")
    return deadline is not None and time.monotonic() > deadline


def _timeout_error() -> QueryTimeoutError:
    return QueryTimeoutError(
        "La requête a dépassé le délai autorisé",
        timeout=g.get("query_timeout"),
    )


def _server_cancelled(error: OperationalError) -> bool:
    orig = error.orig
    if getattr(orig, "pgcode", None) == PG_QUERY_CANCELED:
        return True
    args = getattr(orig, "args", ())
    return bool(args) and args[0] == MYSQL_EXECUTION_TIMEOUT


@event.listens_for(Engine, "connect")
def _install_progress_handler(dbapi_connection, connection_record):
    # a non-zero return interrupts the running SQLite statement
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.set_progress_handler(_deadline_passed, PROGRESS_STEPS)


@event.listens_for(Engine, "before_cursor_execute")
def _enforce_query_deadline(conn, cursor, statement, parameters, context, executemany):
    if _deadline_passed():
        raise _timeout_error()


def with_query_timeout(view):
    """Run a list view under QUERY_TIMEOUT_SECONDS.

    A statement still running at the deadline is interrupted (progress handler
    on SQLite, statement timeout on Postgres/MySQL), and a view that finishes
    after it is answered with QueryTimeoutError rather than its result.
    """

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        seconds = float(current_app.config.get("QUERY_TIMEOUT_SECONDS", 15))
        g.query_timeout = seconds
        g.query_deadline = time.monotonic() + seconds
        try:
            try:
                result = view(*args, **kwargs)
            except OperationalError as e:
                if _deadline_passed() or _server_cancelled(e):
                    raise _timeout_error() from e
                raise
            if _deadline_passed():
                raise _timeout_error()
            return result
        finally:
            g.pop("query_deadline", None)
            g.pop("query_timeout", None)

    return wrapper
