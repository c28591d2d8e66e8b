"""Decide which mail backends a user can be served from."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger

from qumail.application.ports.email_source import (
    HostedCredentials,
    RawMailCredentials,
    ResolvedCredentials,
)
from qumail.application.ports.oauth import TokenRefresher
from qumail.application.ports.user_store import UserStore
from qumail.domain.entities.user import UserRecord
from qumail.domain.errors import HostedUnavailable, MailError, NoCredentials

DEFAULT_IMAP_HOST = "imap.gmail.com"
DEFAULT_IMAP_PORT = 993


class CredentialResolver:
    """
    Builds the credential sets a mail operation may use.

    Both sets are returned when both are usable; the mailbox service decides
    the order. An expired OAuth token with a refresh token is refreshed here
    and written back to the user record, which is the only write on the read
    path. A rejected refresh drops the hosted set; an unreachable token
    endpoint is carried as `hosted_error`, or raised when there is no raw set.
    """

    def __init__(
        self,
        store: UserStore,
        refresher: Optional[TokenRefresher] = None,
        refresh_skew_seconds: int = 60,
        default_imap_host: str = DEFAULT_IMAP_HOST,
        default_imap_port: int = DEFAULT_IMAP_PORT,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.refresh_skew = timedelta(seconds=refresh_skew_seconds)
        self.default_imap_host = default_imap_host
        self.default_imap_port = default_imap_port

    async def resolve(self, user: UserRecord) -> ResolvedCredentials:
        hosted_error: Optional[HostedUnavailable] = None
        try:
            hosted = await self._resolve_hosted(user)
        except HostedUnavailable as e:
            hosted, hosted_error = None, e
        raw = self._resolve_raw(user)

        if hosted is None and raw is None:
            if hosted_error is not None:
                # transient refresh failure, not a missing mailbox
                raise hosted_error
            logger.info(f"No usable mail credentials for user {user.id}")
            raise NoCredentials()

        logger.debug(
            f"Resolved credentials for user {user.id}: "
            f"hosted={'yes' if hosted else 'no'}, raw={'yes' if raw else 'no'}"
        )
        return ResolvedCredentials(hosted=hosted, raw=raw, hosted_error=hosted_error)

    def _is_expired(self, expiry: Optional[datetime]) -> bool:
        if expiry is None:
            return False
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry <= datetime.now(timezone.utc) + self.refresh_skew

    async def _resolve_hosted(self, user: UserRecord) -> Optional[HostedCredentials]:
        if not user.access_token:
            return None

        if not self._is_expired(user.token_expiry):
            return HostedCredentials(
                access_token=user.access_token,
                refresh_token=user.refresh_token,
                expiry=user.token_expiry,
            )

        if not user.refresh_token or self.refresher is None:
            logger.info(f"OAuth token for user {user.id} expired and cannot be refreshed")
            return None

        try:
            refreshed = await self.refresher.refresh(user.refresh_token)
        except HostedUnavailable as e:
            logger.warning(f"OAuth refresh failed for user {user.id}: {e.code}")
            if e.reason == "unreachable":
                raise
            return None
        except MailError as e:
            logger.warning(f"OAuth refresh failed for user {user.id}: {e.code}")
            return None

        self.store.save_token(user.id, refreshed.access_token, refreshed.expiry)
        user.access_token = refreshed.access_token
        user.token_expiry = refreshed.expiry
        logger.info(f"Refreshed OAuth token for user {user.id}")

        return HostedCredentials(
            access_token=refreshed.access_token,
            refresh_token=user.refresh_token,
            expiry=refreshed.expiry,
        )

    def _resolve_raw(self, user: UserRecord) -> Optional[RawMailCredentials]:
        if not user.has_raw_mail:
            return None
        return RawMailCredentials(
            host=user.imap_host or self.default_imap_host,
            port=user.imap_port or self.default_imap_port,
            username=user.imap_user,
            secret=user.imap_pass,
            use_tls=user.imap_secure,
        )
