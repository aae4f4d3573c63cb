"""Database package."""

from .engine import Base, init_db, dispose_db, engine, async_session_factory

__all__ = [
    "Base",
    "init_db",
    "dispose_db",
    "engine",
    "async_session_factory",
]
