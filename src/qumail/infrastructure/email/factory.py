"""Wiring for the mail core: adapters, resolver, and use cases built from settings."""

from __future__ import annotations

from qumail.application.ports.user_store import UserStore
from qumail.application.use_cases.fetch_inbox import MailboxService
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.application.use_cases.send_email import SendEmailUseCase
from qumail.infrastructure.email.providers.gmail_api.auth import GoogleOAuthClient
from qumail.infrastructure.email.providers.gmail_api.client import GmailApiMailSource
from qumail.infrastructure.email.providers.imap.client import ImapMailSource
from qumail.infrastructure.email.sanitizer import get_sanitizer
from qumail.infrastructure.email.smtp import SmtpMailSender
from qumail.infrastructure.settings import Settings, get_settings


class MailFactory:
    """Builds mail components for one settings object."""

    def __init__(self, store: UserStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def oauth_client(self) -> GoogleOAuthClient:
        s = self.settings
        return GoogleOAuthClient(
            client_id=s.google_client_id,
            client_secret=s.google_client_secret.get_secret_value() if s.google_client_secret else None,
            token_url=s.google_token_url,
            userinfo_url=s.google_userinfo_url,
            timeout=s.gmail_timeout_seconds,
        )

    def resolver(self) -> CredentialResolver:
        s = self.settings
        return CredentialResolver(
            store=self.store,
            refresher=self.oauth_client(),
            refresh_skew_seconds=s.token_refresh_skew_seconds,
            default_imap_host=s.imap_default_host,
            default_imap_port=s.imap_default_port,
        )

    def gmail(self) -> GmailApiMailSource:
        s = self.settings
        return GmailApiMailSource(
            sanitizer=get_sanitizer(),
            base_url=s.gmail_api_base_url,
            timeout=s.gmail_timeout_seconds,
            max_concurrent=s.gmail_fanout_concurrency,
        )

    def imap(self) -> ImapMailSource:
        return ImapMailSource(sanitizer=get_sanitizer(), timeout=self.settings.imap_timeout_seconds)

    def smtp(self) -> SmtpMailSender:
        s = self.settings
        return SmtpMailSender(host=s.smtp_host, port=s.smtp_port, timeout=s.smtp_timeout_seconds)

    def mailbox_service(self) -> MailboxService:
        s = self.settings
        return MailboxService(
            resolver=self.resolver(),
            hosted=self.gmail(),
            raw=self.imap(),
            default_query=s.default_inbox_query,
            fallback_on_empty=s.fallback_on_empty,
        )

    def send_use_case(self) -> SendEmailUseCase:
        return SendEmailUseCase(resolver=self.resolver(), hosted=self.gmail(), raw=self.smtp())
