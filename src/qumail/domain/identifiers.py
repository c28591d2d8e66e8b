"""Provider-namespaced message ids and provider-scoped page cursors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from qumail.domain.errors import InvalidMessageId, InvalidPageToken

Provider = Literal["hosted", "raw"]
PROVIDERS: tuple[Provider, ...] = ("hosted", "raw")


def make_public_id(provider: Provider, local_id: str) -> str:
    return f"{provider}:{local_id}"


def parse_public_id(public_id: str) -> tuple[Provider, str]:
    """Split `hosted:abc` / `raw:42` into (provider, local id)."""
    provider, sep, local_id = (public_id or "").partition(":")
    if not sep or provider not in PROVIDERS or not local_id:
        raise InvalidMessageId(details=f"Got {public_id!r}")
    if provider == "raw" and not local_id.isdigit():
        raise InvalidMessageId(details=f"IMAP UID must be numeric, got {local_id!r}")
    return provider, local_id  # type: ignore[return-value]


@dataclass(frozen=True)
class HostedCursor:
    token: str
    provider: Provider = "hosted"

    def encode(self) -> str:
        return f"hosted:{self.token}"


@dataclass(frozen=True)
class RawCursor:
    # Offset into the newest-first UID list; not a true continuation token.
    offset: int
    provider: Provider = "raw"

    def encode(self) -> str:
        return f"raw:{self.offset}"


PageCursor = Union[HostedCursor, RawCursor]


def decode_cursor(page_token: Optional[str]) -> Optional[PageCursor]:
    if not page_token:
        return None
    provider, sep, value = page_token.partition(":")
    if not sep or not value:
        raise InvalidPageToken(details=f"Got {page_token!r}")
    if provider == "hosted":
        return HostedCursor(token=value)
    if provider == "raw":
        if not value.isdigit():
            raise InvalidPageToken(details=f"Raw offset must be numeric, got {value!r}")
        return RawCursor(offset=int(value))
    raise InvalidPageToken(details=f"Unknown provider {provider!r}")
