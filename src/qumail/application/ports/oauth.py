from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass(frozen=True)
class RefreshedToken:
    access_token: str
    expiry: Optional[datetime]


class TokenRefresher(Protocol):
    async def refresh(self, refresh_token: str) -> RefreshedToken: ...
