"""
Content store: SQLAlchemy models, sessions and the query/write repository.
"""

from recall.db.database import get_engine, init_db, make_engine, session_scope
from recall.db.store import ContentStore

__all__ = [
    "ContentStore",
    "get_engine",
    "init_db",
    "make_engine",
    "session_scope",
]
