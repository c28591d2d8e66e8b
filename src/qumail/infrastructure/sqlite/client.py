"""SQLite client for user and mailbox credential storage."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

from loguru import logger

from qumail.domain.entities.user import UserRecord


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteUserStore:
    """SQLite-backed user store (implements the UserStore port)."""

    def __init__(self, db_path: str | Path = "./data/qumail.db"):
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT,
                    image TEXT,

                    access_token TEXT,
                    refresh_token TEXT,
                    token_expiry TEXT,

                    imap_user TEXT,
                    imap_pass TEXT,
                    imap_host TEXT,
                    imap_port INTEGER,
                    imap_secure INTEGER NOT NULL DEFAULT 1,

                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
            """)
            logger.info(f"SQLite user store initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> UserRecord:
        return UserRecord(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            image=row["image"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            token_expiry=_from_iso(row["token_expiry"]),
            imap_user=row["imap_user"],
            imap_pass=row["imap_pass"],
            imap_host=row["imap_host"],
            imap_port=row["imap_port"],
            imap_secure=bool(row["imap_secure"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get(self, user_id: str) -> Optional[UserRecord]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),)).fetchone()
        return self._row_to_user(row) if row else None

    def _get_or_create(self, conn: sqlite3.Connection, email: str, name: Optional[str]) -> str:
        row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        if row:
            return row["id"]

        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            """INSERT INTO users (id, email, name, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)""",
            (user_id, email, name or email.split("@")[0], now, now),
        )
        logger.info(f"Created new user: {email}")
        return user_id

    def upsert_app_password(
        self,
        email: str,
        app_password: str,
        imap_host: str,
        imap_port: int,
        imap_secure: bool = True,
    ) -> UserRecord:
        """Create or update a user with IMAP/SMTP app-password credentials."""
        email = email.lower().strip()
        now = datetime.now(timezone.utc).isoformat()

        with self._connection() as conn:
            user_id = self._get_or_create(conn, email, None)
            conn.execute(
                """UPDATE users
                   SET imap_user = ?, imap_pass = ?, imap_host = ?, imap_port = ?,
                       imap_secure = ?, updated_at = ?
                   WHERE id = ?""",
                (email, app_password, imap_host, imap_port, int(imap_secure), now, user_id),
            )

        logger.debug(f"Stored IMAP credentials for {email} ({imap_host}:{imap_port})")
        return self.get(user_id)  # type: ignore[return-value]

    def upsert_oauth(
        self,
        email: str,
        access_token: str,
        token_expiry: Optional[datetime],
        refresh_token: Optional[str] = None,
        name: Optional[str] = None,
        image: Optional[str] = None,
    ) -> UserRecord:
        """Create or update a user with a hosted-provider OAuth token set."""
        email = email.lower().strip()
        now = datetime.now(timezone.utc).isoformat()

        with self._connection() as conn:
            user_id = self._get_or_create(conn, email, name)
            conn.execute(
                """UPDATE users
                   SET access_token = ?, token_expiry = ?,
                       refresh_token = COALESCE(?, refresh_token),
                       name = COALESCE(?, name), image = COALESCE(?, image),
                       updated_at = ?
                   WHERE id = ?""",
                (access_token, _to_iso(token_expiry), refresh_token, name, image, now, user_id),
            )

        logger.debug(f"Stored OAuth token for {email}")
        return self.get(user_id)  # type: ignore[return-value]

    def save_token(self, user_id: str, access_token: str, expiry: Optional[datetime]) -> None:
        """Persist a refreshed access token (single-row update, last writer wins)."""
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                "UPDATE users SET access_token = ?, token_expiry = ?, updated_at = ? WHERE id = ?",
                (access_token, _to_iso(expiry), now, user_id),
            )


# Singleton instance
_store: SQLiteUserStore | None = None


def get_user_store(db_path: str | None = None) -> SQLiteUserStore:
    """Get or create SQLite user store singleton."""
    global _store
    if _store is None:
        from qumail.infrastructure.settings import get_settings
        path = db_path or get_settings().sqlite_db_path
        _store = SQLiteUserStore(db_path=path)
    return _store
