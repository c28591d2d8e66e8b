"""Domain models and entities."""

from qumail.domain.entities.email_message import AttachmentInfo, NormalizedMessage
from qumail.domain.entities.user import UserRecord
from qumail.domain.errors import (
    HostedUnavailable,
    InvalidMessageId,
    InvalidPageToken,
    MailError,
    MailSendFailed,
    MalformedMessage,
    MessageNotFound,
    NoCredentials,
    RawMailUnavailable,
    SanitizationFailure,
)
from qumail.domain.identifiers import (
    HostedCursor,
    PageCursor,
    Provider,
    RawCursor,
    decode_cursor,
    make_public_id,
    parse_public_id,
)

__all__ = [
    "AttachmentInfo",
    "NormalizedMessage",
    "UserRecord",
    # Errors
    "MailError",
    "NoCredentials",
    "HostedUnavailable",
    "RawMailUnavailable",
    "MalformedMessage",
    "SanitizationFailure",
    "MessageNotFound",
    "InvalidMessageId",
    "InvalidPageToken",
    "MailSendFailed",
    # Identifiers
    "Provider",
    "PageCursor",
    "HostedCursor",
    "RawCursor",
    "decode_cursor",
    "make_public_id",
    "parse_public_id",
]
