"""Database session and metadata helpers."""

from .session import Base, check_database, get_engine, get_session, get_sessionmaker, init_db

__all__ = [
    "Base",
    "check_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
]
