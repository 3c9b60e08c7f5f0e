"""
Database Infrastructure Package for Hatch

Exports database utilities. Models and repositories live in the
``models`` and ``repositories`` subpackages.
"""

from hatch_api.infrastructure.db.database import (
    DatabaseManager,
    close_db,
    get_db_manager,
    get_session,
    get_session_context,
    init_db,
    resolve_database_url,
)


__all__ = [
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_session",
    "get_session_context",
    "init_db",
    "resolve_database_url",
]
