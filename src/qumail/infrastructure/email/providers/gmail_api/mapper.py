"""Gmail API message resources -> NormalizedMessage."""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any, Optional

from qumail.application.ports.email_source import HostedMessage
from qumail.domain.entities.email_message import AttachmentInfo, NormalizedMessage
from qumail.domain.errors import MalformedMessage
from qumail.infrastructure.email.sanitizer import HtmlSanitizer

_CHARSET_RE = re.compile(r'charset="?([^";\s]+)"?', re.IGNORECASE)


def parse_hosted(data: dict[str, Any]) -> HostedMessage:
    try:
        return HostedMessage(
            id=data["id"],
            thread_id=data.get("threadId"),
            label_ids=tuple(data.get("labelIds") or ()),
            payload=data.get("payload") or {},
            internal_date=data.get("internalDate"),
        )
    except (KeyError, TypeError) as e:
        raise MalformedMessage(details=f"unexpected message resource: {e}") from e


def headers_of(part: dict[str, Any]) -> dict[str, str]:
    return {h.get("name", "").lower(): h.get("value", "") for h in part.get("headers") or []}


def _first_leaf(part: dict[str, Any], mime_type: str) -> Optional[dict[str, Any]]:
    """Depth-first search for the first non-attachment leaf of `mime_type` with data."""
    if (
        part.get("mimeType") == mime_type
        and not part.get("filename")
        and (part.get("body") or {}).get("data")
    ):
        return part
    for child in part.get("parts") or []:
        found = _first_leaf(child, mime_type)
        if found is not None:
            return found
    return None


def decode_part(part: dict[str, Any]) -> str:
    data = part["body"]["data"]
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError) as e:
        raise MalformedMessage(details=f"bad base64 body: {e}") from e

    match = _CHARSET_RE.search(headers_of(part).get("content-type", ""))
    charset = match.group(1) if match else "utf-8"
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def find_body(payload: dict[str, Any]) -> tuple[str, bool]:
    """(content, is_html): first text/html leaf, else first text/plain leaf, else empty."""
    part = _first_leaf(payload, "text/html")
    if part is not None:
        return decode_part(part), True
    part = _first_leaf(payload, "text/plain")
    if part is not None:
        return decode_part(part), False
    return "", False


def find_attachments(payload: dict[str, Any]) -> list[AttachmentInfo]:
    out: list[AttachmentInfo] = []
    stack = [payload]
    while stack:
        part = stack.pop(0)
        if part.get("filename"):
            out.append(
                AttachmentInfo(
                    filename=part["filename"],
                    content_type=part.get("mimeType", "application/octet-stream"),
                    size=int((part.get("body") or {}).get("size") or 0),
                )
            )
        stack.extend(part.get("parts") or [])
    return out


def _date(headers: dict[str, str], internal_date: Optional[str]) -> str:
    if headers.get("date"):
        return headers["date"]
    if internal_date and str(internal_date).isdigit():
        return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc).isoformat()
    return ""


def hosted_to_normalized(msg: HostedMessage, sanitizer: HtmlSanitizer) -> NormalizedMessage:
    headers = headers_of(msg.payload)
    content, is_html = find_body(msg.payload)
    body, snippet = sanitizer.render(content, is_html, message_ref=f"hosted:{msg.id}")

    return NormalizedMessage(
        id=msg.id,
        thread_id=msg.thread_id,
        sender=headers.get("from", ""),
        to=headers.get("to", ""),
        subject=headers.get("subject", ""),
        date=_date(headers, msg.internal_date),
        body=body,
        snippet=snippet,
        unread="UNREAD" in msg.label_ids,
        attachments=tuple(find_attachments(msg.payload)),
    )
