"""Database module for local SQLite storage."""

from .identity import SnowflakeGenerator, generate_id, stamp, utcnow
from .models import Base
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "Database",
    "SnowflakeGenerator",
    "generate_id",
    "get_db",
    "reset_db",
    "stamp",
    "utcnow",
]
