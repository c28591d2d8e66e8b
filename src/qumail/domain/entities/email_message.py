from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class AttachmentInfo:
    filename: str
    content_type: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "contentType": self.content_type, "size": self.size}


@dataclass(frozen=True)
class NormalizedMessage:
    """
    One message as handed to callers, whichever backend produced it.

    `id` is the provider-local id while the message is inside an adapter and
    the namespaced `{provider}:{localId}` form once it leaves the mailbox
    service. `body` is always sanitized HTML.
    """
    id: str
    thread_id: Optional[str]
    sender: str
    to: str
    subject: str
    date: str
    body: str
    snippet: str
    unread: bool = False
    attachments: tuple[AttachmentInfo, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "date": self.date,
            "body": self.body,
            "snippet": self.snippet,
            "unread": self.unread,
            "attachments": [a.to_dict() for a in self.attachments],
        }
