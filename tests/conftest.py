"""Shared fixtures for the mail core tests."""

from __future__ import annotations

from email.message import EmailMessage
from typing import Optional

import pytest

from qumail.domain.entities.user import UserRecord
from qumail.infrastructure.email.sanitizer import HtmlSanitizer


class InMemoryUserStore:
    """Dict-backed stand-in for the SQLite store."""

    def __init__(self, *users: UserRecord) -> None:
        self.users = {u.id: u for u in users}
        self.saved_tokens: list[tuple[str, str, object]] = []

    def get(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.email == email.lower()), None)

    def save_token(self, user_id, access_token, expiry) -> None:
        self.saved_tokens.append((user_id, access_token, expiry))


def build_rfc822(
    subject: str = "Hello",
    sender: str = "alice@example.com",
    to: str = "bob@example.com",
    html: str | None = "<p>Hi <b>Bob</b></p>",
    text: str | None = None,
) -> bytes:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    msg["Date"] = "Mon, 02 Jun 2025 10:00:00 +0000"
    if text is not None:
        msg.set_content(text)
        if html is not None:
            msg.add_alternative(html, subtype="html")
    else:
        msg.set_content(html or "", subtype="html")
    return msg.as_bytes()


# A multipart whose declared boundary never appears in the body.
TRUNCATED_MULTIPART = (
    b"From: broken@example.com\r\n"
    b"To: bob@example.com\r\n"
    b"Subject: broken\r\n"
    b"MIME-Version: 1.0\r\n"
    b'Content-Type: multipart/mixed; boundary="never-here"\r\n'
    b"\r\n"
    b"this body was cut off before the first part\r\n"
)


@pytest.fixture
def sanitizer() -> HtmlSanitizer:
    return HtmlSanitizer()


@pytest.fixture
def oauth_user() -> UserRecord:
    return UserRecord(id="u-1", email="bob@example.com", access_token="ya29.token")


@pytest.fixture
def imap_user() -> UserRecord:
    return UserRecord(
        id="u-2",
        email="carol@example.com",
        imap_user="carol@example.com",
        imap_pass="app-pass",
        imap_host="imap.example.com",
        imap_port=993,
    )


@pytest.fixture
def dual_user() -> UserRecord:
    return UserRecord(
        id="u-3",
        email="dave@example.com",
        access_token="ya29.token",
        imap_user="dave@example.com",
        imap_pass="app-pass",
    )
