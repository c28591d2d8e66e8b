"""Classified mail failures.

Adapters convert transport and protocol exceptions into these before anything
crosses into the mailbox service; the HTTP layer turns them into structured
JSON bodies.
"""

from __future__ import annotations

from typing import Any, Literal

Reason = Literal["auth", "unreachable"]


class MailError(Exception):
    """Base class for every failure the mail core reports to callers."""

    code = "MAIL_ERROR"
    status_code = 500
    default_message = "Mail operation failed"

    def __init__(self, message: str | None = None, details: str | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NoCredentials(MailError):
    code = "NO_MAILBOX_CONFIGURED"
    status_code = 409
    default_message = "No mailbox configured - sign in with Google or add an app password"


class _ProviderUnavailable(MailError):
    auth_code = "AUTH_FAILED"
    unreachable_code = "UNREACHABLE"
    auth_message = "Authentication failed"
    unreachable_message = "Server unreachable"

    def __init__(self, reason: Reason, details: str | None = None, message: str | None = None) -> None:
        self.reason = reason
        default = self.auth_message if reason == "auth" else self.unreachable_message
        super().__init__(message or default, details)

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.auth_code if self.reason == "auth" else self.unreachable_code

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 502 if self.reason == "auth" else 503


class HostedUnavailable(_ProviderUnavailable):
    auth_code = "HOSTED_AUTH_FAILED"
    unreachable_code = "HOSTED_UNREACHABLE"
    auth_message = "Google authorization failed - please sign in again"
    unreachable_message = "Cannot reach the Gmail API - please try again"


class RawMailUnavailable(_ProviderUnavailable):
    auth_code = "IMAP_AUTH_FAILED"
    unreachable_code = "IMAP_CONNECTION_FAILED"
    auth_message = "IMAP authentication failed - please check your app password"
    unreachable_message = "Cannot connect to the mail server - please check your mail settings"


class MalformedMessage(MailError):
    code = "MALFORMED_MESSAGE"
    status_code = 502
    default_message = "Message could not be parsed"


class SanitizationFailure(MailError):
    code = "SANITIZATION_FAILED"
    default_message = "Message body could not be sanitized"


class MessageNotFound(MailError):
    code = "MESSAGE_NOT_FOUND"
    status_code = 404
    default_message = "Message not found"


class InvalidMessageId(MailError):
    code = "INVALID_MESSAGE_ID"
    status_code = 400
    default_message = "Message id must look like 'hosted:<id>' or 'raw:<uid>'"


class InvalidPageToken(MailError):
    code = "INVALID_PAGE_TOKEN"
    status_code = 400
    default_message = "Page token is not recognised"


class MailSendFailed(MailError):
    code = "EMAIL_SEND_FAILED"
    status_code = 502
    default_message = "Failed to send email"

    def __init__(self, message: str | None = None, details: str | None = None, auth: bool = False) -> None:
        super().__init__(message, details)
        if auth:
            self.code = "EMAIL_AUTH_FAILED"
