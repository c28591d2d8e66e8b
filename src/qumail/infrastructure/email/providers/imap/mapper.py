from __future__ import annotations

from qumail.application.ports.email_source import RawMessage
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.infrastructure.email.rfc822 import extract_attachments, extract_body, header, joined_header
from qumail.infrastructure.email.sanitizer import HtmlSanitizer

SEEN_FLAG = "\\Seen"


def raw_to_normalized(raw: RawMessage, sanitizer: HtmlSanitizer) -> NormalizedMessage:
    em = raw.message

    subject = header(em, "Subject")
    sender = header(em, "From")
    to = joined_header(em, "To")
    # Keep the server's Date string as-is; formats vary too much to coerce safely.
    date = header(em, "Date")

    content, is_html = extract_body(em)
    body, snippet = sanitizer.render(content, is_html, message_ref=f"raw:{raw.uid}")

    return NormalizedMessage(
        id=str(raw.uid),
        thread_id=None,
        sender=sender,
        to=to,
        subject=subject,
        date=date,
        body=body,
        snippet=snippet,
        unread=SEEN_FLAG not in raw.flags,
        attachments=tuple(extract_attachments(em)),
    )
