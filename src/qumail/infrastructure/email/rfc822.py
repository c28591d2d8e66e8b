from __future__ import annotations
from email import errors, policy
from email.message import EmailMessage, Message
from email.parser import BytesParser

from qumail.domain.entities.email_message import AttachmentInfo
from qumail.domain.errors import MalformedMessage

# Structural defects that leave the body unrecoverable (e.g. a truncated multipart).
FATAL_DEFECTS = (
    errors.StartBoundaryNotFoundDefect,
    errors.MultipartInvariantViolationDefect,
)


def parse_rfc822(rfc822_bytes: bytes | None) -> EmailMessage:
    if not rfc822_bytes:
        raise MalformedMessage(details="empty message")

    try:
        em = BytesParser(policy=policy.default).parsebytes(rfc822_bytes)
    except Exception as e:
        raise MalformedMessage(details=f"parse error: {e}") from e

    if not em.keys():
        raise MalformedMessage(details="no headers")

    for part in em.walk():
        for defect in part.defects:
            if isinstance(defect, FATAL_DEFECTS):
                raise MalformedMessage(details=type(defect).__name__)
    return em


def header(em: Message, name: str) -> str:
    try:
        return str(em.get(name) or "").strip()
    except Exception as e:
        raise MalformedMessage(details=f"bad {name} header: {e}") from e


def joined_header(em: Message, name: str) -> str:
    try:
        return ", ".join(str(x).strip() for x in (em.get_all(name) or []))
    except Exception as e:
        raise MalformedMessage(details=f"bad {name} header: {e}") from e


def extract_body(em: EmailMessage) -> tuple[str, bool]:
    """(content, is_html); prefers text/html over text/plain."""
    part = em.get_body(preferencelist=("html", "plain"))
    if part is None:
        return "", False

    is_html = part.get_content_type() == "text/html"
    try:
        return part.get_content(), is_html
    except LookupError:
        # Unknown charset label; decode the bytes as UTF-8 instead.
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace"), is_html
    except Exception as e:
        raise MalformedMessage(details=f"undecodable body: {e}") from e


def extract_attachments(em: Message) -> list[AttachmentInfo]:
    out: list[AttachmentInfo] = []
    for part in em.walk():
        if part.is_multipart():
            continue

        filename = part.get_filename()
        disp = (part.get("Content-Disposition") or "").lower()

        # explicit attachments + inline parts that carry a filename
        if not filename and "attachment" not in disp:
            continue

        payload = part.get_payload(decode=True) or b""
        out.append(
            AttachmentInfo(
                filename=filename or "attachment.bin",
                content_type=part.get_content_type(),
                size=len(payload),
            )
        )
    return out
