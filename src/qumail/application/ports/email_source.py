from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from typing import Any, Optional, Protocol, Union

from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.errors import HostedUnavailable


@dataclass(frozen=True)
class HostedCredentials:
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None


@dataclass(frozen=True)
class RawMailCredentials:
    host: str
    port: int
    username: str
    secret: str
    use_tls: bool = True


@dataclass(frozen=True)
class ResolvedCredentials:
    hosted: Optional[HostedCredentials] = None
    raw: Optional[RawMailCredentials] = None
    # Set when the OAuth token could not be refreshed because Google was unreachable.
    hosted_error: Optional[HostedUnavailable] = None


# Provider-native shapes, converted to NormalizedMessage inside the adapter.
@dataclass(frozen=True)
class HostedMessage:
    id: str
    thread_id: Optional[str]
    label_ids: tuple[str, ...]
    payload: dict[str, Any]
    internal_date: Optional[str] = None


@dataclass(frozen=True)
class RawMessage:
    uid: int
    flags: tuple[str, ...]
    message: EmailMessage


ProviderMessage = Union[HostedMessage, RawMessage]


@dataclass(frozen=True)
class HostedPage:
    messages: list[NormalizedMessage] = field(default_factory=list)
    next_token: Optional[str] = None


class HostedMailSource(Protocol):
    async def list(
        self,
        creds: HostedCredentials,
        query: str,
        page_token: Optional[str],
        limit: int,
    ) -> HostedPage: ...

    async def get(self, creds: HostedCredentials, local_id: str) -> NormalizedMessage: ...


class RawMailSource(Protocol):
    async def list(self, creds: RawMailCredentials, limit: int, offset: int = 0) -> list[NormalizedMessage]: ...

    async def get_by_local_id(self, creds: RawMailCredentials, local_id: str) -> NormalizedMessage: ...
