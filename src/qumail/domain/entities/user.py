from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class UserRecord:
    """A mailbox owner with whatever credentials they have provisioned."""
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None

    # Hosted provider (OAuth)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[datetime] = None

    # Raw mail (IMAP/SMTP app password)
    imap_user: Optional[str] = None
    imap_pass: Optional[str] = None
    imap_host: Optional[str] = None
    imap_port: Optional[int] = None
    imap_secure: bool = True

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def has_raw_mail(self) -> bool:
        return bool(self.imap_user and self.imap_pass)

    def public_profile(self) -> dict[str, Optional[str]]:
        return {"_id": self.id, "email": self.email, "name": self.name, "image": self.image}
