"""Unified inbox over the hosted API and raw IMAP backends."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from loguru import logger

from qumail.application.ports.email_source import (
    HostedMailSource,
    RawMailSource,
    ResolvedCredentials,
)
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.entities.user import UserRecord
from qumail.domain.errors import (
    HostedUnavailable,
    MailError,
    NoCredentials,
    RawMailUnavailable,
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


class FetchState(str, Enum):
    START = "start"
    TRY_HOSTED = "try_hosted"
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"
    TRY_RAW = "try_raw"
    DONE = "done"


@dataclass
class InboxPage:
    emails: list[NormalizedMessage] = field(default_factory=list)
    next_page_token: Optional[str] = None
    source: Optional[Provider] = None
    error: Optional[MailError] = None

    @property
    def has_more(self) -> bool:
        return self.next_page_token is not None

    @property
    def approximate_pagination(self) -> bool:
        return self.source == "raw"

    def to_dict(self) -> dict[str, Any]:
        return {
            "emails": [m.to_dict() for m in self.emails],
            "nextPageToken": self.next_page_token,
            "hasMore": self.has_more,
            "source": self.source,
            "approximatePagination": self.approximate_pagination,
            "error": self.error.to_dict() if self.error else None,
        }


def _namespaced(provider: Provider, messages: list[NormalizedMessage]) -> list[NormalizedMessage]:
    return [dataclasses.replace(m, id=make_public_id(provider, m.id)) for m in messages]


class MailboxService:
    """
    Hosted first, raw IMAP second.

    Per request: START -> TRY_HOSTED -> (SUCCESS | EMPTY | FAILED) -> [TRY_RAW] -> DONE.
    The two backends are never queried concurrently. Continuation requests
    carry a cursor naming the provider that produced it and are served by
    that provider only.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        hosted: HostedMailSource,
        raw: RawMailSource,
        default_query: str = "in:inbox",
        fallback_on_empty: bool = True,
    ) -> None:
        self.resolver = resolver
        self.hosted = hosted
        self.raw = raw
        self.default_query = default_query
        self.fallback_on_empty = fallback_on_empty

    # ---------- Listing ----------

    async def list_inbox(
        self,
        user: UserRecord,
        query: Optional[str] = None,
        page_token: Optional[str] = None,
        limit: int = 20,
    ) -> InboxPage:
        cursor = decode_cursor(page_token)

        try:
            creds = await self.resolver.resolve(user)
        except (NoCredentials, HostedUnavailable) as e:
            return InboxPage(error=e)

        if cursor is not None:
            return await self._continue(creds, cursor, query, limit)

        state = FetchState.START
        hosted_error: Optional[HostedUnavailable] = creds.hosted_error
        hosted_page: Optional[InboxPage] = None
        if hosted_error is not None:
            state = self._transition(user, state, FetchState.FAILED)

        if creds.hosted is not None:
            state = self._transition(user, state, FetchState.TRY_HOSTED)
            try:
                page = await self.hosted.list(creds.hosted, query or self.default_query, None, limit)
            except HostedUnavailable as e:
                hosted_error = e
                state = self._transition(user, state, FetchState.FAILED)
            else:
                hosted_page = InboxPage(
                    emails=_namespaced("hosted", page.messages),
                    next_page_token=HostedCursor(page.next_token).encode() if page.next_token else None,
                    source="hosted",
                )
                if hosted_page.emails:
                    self._transition(user, state, FetchState.SUCCESS)
                    return hosted_page
                state = self._transition(user, state, FetchState.EMPTY)
                if not self.fallback_on_empty:
                    return hosted_page

        if creds.raw is None:
            self._transition(user, state, FetchState.DONE)
            if hosted_error is not None:
                return InboxPage(error=hosted_error)
            return hosted_page or InboxPage()

        state = self._transition(user, state, FetchState.TRY_RAW)
        try:
            messages = await self.raw.list(creds.raw, limit)
        except RawMailUnavailable as e:
            if hosted_error is not None:
                logger.warning(
                    f"Inbox for user {user.id}: hosted failed ({hosted_error.code}) and raw failed ({e.code})"
                )
            self._transition(user, state, FetchState.DONE)
            return InboxPage(error=e)

        self._transition(user, state, FetchState.DONE)
        return InboxPage(emails=_namespaced("raw", messages), source="raw")

    async def _continue(
        self,
        creds: ResolvedCredentials,
        cursor: PageCursor,
        query: Optional[str],
        limit: int,
    ) -> InboxPage:
        if isinstance(cursor, HostedCursor):
            if creds.hosted is None:
                return InboxPage(
                    error=creds.hosted_error
                    or HostedUnavailable("auth", details="Page token belongs to Gmail but the Google session has expired")
                )
            try:
                page = await self.hosted.list(creds.hosted, query or self.default_query, cursor.token, limit)
            except HostedUnavailable as e:
                return InboxPage(error=e)
            return InboxPage(
                emails=_namespaced("hosted", page.messages),
                next_page_token=HostedCursor(page.next_token).encode() if page.next_token else None,
                source="hosted",
            )

        assert isinstance(cursor, RawCursor)
        if creds.raw is None:
            return InboxPage(error=NoCredentials(details="Page token belongs to IMAP but no app password is stored"))
        try:
            messages = await self.raw.list(creds.raw, limit, offset=cursor.offset)
        except RawMailUnavailable as e:
            return InboxPage(error=e)
        return InboxPage(emails=_namespaced("raw", messages), source="raw")

    @staticmethod
    def _transition(user: UserRecord, current: FetchState, nxt: FetchState) -> FetchState:
        logger.debug(f"Inbox fetch for user {user.id}: {current.value} -> {nxt.value}")
        return nxt

    # ---------- Single message ----------

    async def get_message(self, user: UserRecord, public_id: str) -> NormalizedMessage:
        provider, local_id = parse_public_id(public_id)
        creds = await self.resolver.resolve(user)

        if provider == "hosted":
            if creds.hosted is None:
                if creds.hosted_error is not None:
                    raise creds.hosted_error
                raise NoCredentials(details="Message is from Gmail but no Google session is available")
            message = await self.hosted.get(creds.hosted, local_id)
        else:
            if creds.raw is None:
                raise NoCredentials(details="Message is from IMAP but no app password is stored")
            message = await self.raw.get_by_local_id(creds.raw, local_id)

        return dataclasses.replace(message, id=make_public_id(provider, local_id))
