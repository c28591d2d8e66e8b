from __future__ import annotations
import asyncio
import imaplib
from typing import Optional

from loguru import logger

from qumail.application.ports.email_source import RawMailCredentials, RawMessage
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.errors import MalformedMessage, MessageNotFound, RawMailUnavailable
from qumail.infrastructure.email.providers.imap.auth import mailbox_session
from qumail.infrastructure.email.providers.imap.mapper import raw_to_normalized
from qumail.infrastructure.email.rfc822 import parse_rfc822
from qumail.infrastructure.email.sanitizer import HtmlSanitizer

FETCH_ITEMS = "(FLAGS BODY.PEEK[])"


class ImapMailSource:
    """
    Read-only IMAP adapter.

    Every call opens its own session and closes it before returning. imaplib
    is blocking, so the work runs in a thread; the session is still closed if
    the awaiting request goes away.
    """

    def __init__(self, sanitizer: HtmlSanitizer, folder: str = "INBOX", timeout: float = 30.0) -> None:
        self.sanitizer = sanitizer
        self.folder = folder
        self.timeout = timeout

    # ---------- Public methods implementing RawMailSource ----------

    async def list(self, creds: RawMailCredentials, limit: int, offset: int = 0) -> list[NormalizedMessage]:
        return await asyncio.to_thread(self._list_sync, creds, limit, offset)

    async def get_by_local_id(self, creds: RawMailCredentials, local_id: str) -> NormalizedMessage:
        return await asyncio.to_thread(self._get_sync, creds, int(local_id))

    # ---------- Blocking implementation ----------

    def _list_sync(self, creds: RawMailCredentials, limit: int, offset: int) -> list[NormalizedMessage]:
        with mailbox_session(creds, self.folder, self.timeout) as conn:
            try:
                uids = self._search_all(conn)
                # newest first, provider order otherwise untouched
                window = list(reversed(uids))[offset:offset + limit]
                logger.info(
                    f"IMAP {creds.username}: {len(uids)} messages in {self.folder}, fetching {len(window)}"
                )

                messages: list[NormalizedMessage] = []
                for uid in window:
                    try:
                        raw = self._fetch(conn, uid)
                        if raw is None:
                            logger.debug(f"UID {uid} vanished between SEARCH and FETCH")
                            continue
                        messages.append(raw_to_normalized(raw, self.sanitizer))
                    except MalformedMessage as e:
                        logger.warning(f"Skipping malformed message uid={uid}: {e.details}")
                return messages
            except (imaplib.IMAP4.error, OSError) as e:
                raise RawMailUnavailable("unreachable", details=str(e)) from e

    def _get_sync(self, creds: RawMailCredentials, uid: int) -> NormalizedMessage:
        with mailbox_session(creds, self.folder, self.timeout) as conn:
            try:
                raw = self._fetch(conn, uid)
            except (imaplib.IMAP4.error, OSError) as e:
                raise RawMailUnavailable("unreachable", details=str(e)) from e
            if raw is None:
                raise MessageNotFound(details=f"No message with UID {uid} in {self.folder}")
            return raw_to_normalized(raw, self.sanitizer)

    def _search_all(self, conn: imaplib.IMAP4) -> list[int]:
        typ, data = conn.uid("SEARCH", None, "ALL")
        if typ != "OK":
            raise RawMailUnavailable("unreachable", details="UID SEARCH failed")
        if not data or not data[0]:
            return []
        return [int(x) for x in data[0].split()]

    def _fetch(self, conn: imaplib.IMAP4, uid: int) -> Optional[RawMessage]:
        """Fetch by UID (sequence numbers are not stable across sessions)."""
        typ, data = conn.uid("FETCH", str(uid), FETCH_ITEMS)
        if typ != "OK":
            raise MalformedMessage(details=f"UID FETCH {uid} returned {typ}")

        meta = b""
        body: Optional[bytes] = None
        found = False
        for item in data or []:
            if isinstance(item, tuple):
                found = True
                meta += item[0]
                body = item[1]
            elif isinstance(item, bytes):
                meta += item

        if not found:
            return None

        flags = tuple(f.decode("ascii", errors="replace") for f in imaplib.ParseFlags(meta))
        return RawMessage(uid=uid, flags=flags, message=parse_rfc822(body))
