"""Application layer - use cases and the ports they depend on."""

from qumail.application.use_cases.fetch_inbox import InboxPage, MailboxService
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.application.use_cases.send_email import SendEmailUseCase, SendResult

__all__ = [
    "CredentialResolver",
    "InboxPage",
    "MailboxService",
    "SendEmailUseCase",
    "SendResult",
]
