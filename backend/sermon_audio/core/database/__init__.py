"""Database configuration and models."""

from sermon_audio.core.database.base import Base, TimestampMixin
from sermon_audio.core.database.session import engine, session_factory, get_db

__all__ = [
    "Base",
    "TimestampMixin",
    "engine",
    "session_factory",
    "get_db",
]
