from __future__ import annotations
from datetime import datetime
from typing import Optional, Protocol

from qumail.domain.entities.user import UserRecord


class UserStore(Protocol):
    def get(self, user_id: str) -> Optional[UserRecord]: ...
    def get_by_email(self, email: str) -> Optional[UserRecord]: ...
    def save_token(self, user_id: str, access_token: str, expiry: Optional[datetime]) -> None: ...
