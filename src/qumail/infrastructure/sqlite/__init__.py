"""SQLite infrastructure for user and credential storage."""

from qumail.infrastructure.sqlite.client import (
    SQLiteUserStore,
    get_user_store,
)

__all__ = [
    "SQLiteUserStore",
    "get_user_store",
]
