"""Persistence: SQLAlchemy engine/session factory and the optional Redis cache."""

from secondchance.db.base import Base, close_db, get_session_factory, init_db, persistence_guard
from secondchance.db.redis import close_redis, get_redis_or_none, init_redis

__all__ = [
    "Base",
    "close_db",
    "close_redis",
    "get_redis_or_none",
    "get_session_factory",
    "init_db",
    "init_redis",
    "persistence_guard",
]
