"""Gmail REST adapter (list / get / mark-read / send)."""

from __future__ import annotations

import asyncio
import base64
from contextlib import asynccontextmanager
from email.message import EmailMessage
from typing import Any, AsyncIterator, Optional

import httpx
from loguru import logger

from qumail.application.ports.email_source import HostedCredentials, HostedPage
from qumail.application.ports.mail_sender import OutgoingEmail
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.errors import HostedUnavailable, MailSendFailed, MalformedMessage, MessageNotFound
from qumail.infrastructure.email.providers.gmail_api.auth import classify_http_error
from qumail.infrastructure.email.providers.gmail_api.mapper import hosted_to_normalized, parse_hosted
from qumail.infrastructure.email.sanitizer import HtmlSanitizer

MAX_PAGE_SIZE = 500  # Gmail's own cap for messages.list


class GmailApiMailSource:
    """
    Hosted-API adapter.

    One httpx client per call, closed before returning. Transport and auth
    failures surface as HostedUnavailable and are never retried here; the
    mailbox service decides whether to fall back.
    """

    def __init__(
        self,
        sanitizer: HtmlSanitizer,
        base_url: str = "https://gmail.googleapis.com/gmail/v1/users/me",
        timeout: float = 30.0,
        max_concurrent: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.sanitizer = sanitizer
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self._transport = transport

    @asynccontextmanager
    async def _client(self, creds: HostedCredentials) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {creds.access_token}"},
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            yield client

    @staticmethod
    async def _request(client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise MessageNotFound(details=f"{method} {path}") from e
            raise classify_http_error(e) from e
        except httpx.HTTPError as e:
            raise classify_http_error(e) from e
        except ValueError as e:
            raise HostedUnavailable("unreachable", details=f"invalid JSON from {path}") from e

    # ---------- Public methods implementing HostedMailSource ----------

    async def list(
        self,
        creds: HostedCredentials,
        query: str,
        page_token: Optional[str],
        limit: int,
    ) -> HostedPage:
        params: dict[str, Any] = {"maxResults": min(limit, MAX_PAGE_SIZE)}
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token

        async with self._client(creds) as client:
            try:
                data = await self._request(client, "GET", "/messages", params=params)
            except MessageNotFound as e:
                raise HostedUnavailable("unreachable", details="messages.list returned 404") from e

            ids = [m["id"] for m in data.get("messages") or [] if m.get("id")]
            next_token = data.get("nextPageToken")
            logger.info(f"Gmail list q={query!r}: {len(ids)} ids, more={'yes' if next_token else 'no'}")

            semaphore = asyncio.Semaphore(self.max_concurrent)

            async def fetch_one(msg_id: str) -> Optional[NormalizedMessage]:
                async with semaphore:
                    try:
                        detail = await self._request(client, "GET", f"/messages/{msg_id}", params={"format": "full"})
                        return hosted_to_normalized(parse_hosted(detail), self.sanitizer)
                    except MessageNotFound:
                        logger.debug(f"Gmail message {msg_id} disappeared after listing")
                        return None
                    except MalformedMessage as e:
                        logger.warning(f"Skipping malformed Gmail message {msg_id}: {e.details}")
                        return None

            # gather keeps the list order regardless of completion order; every
            # fetch settles before the client closes
            results = await asyncio.gather(*(fetch_one(i) for i in ids), return_exceptions=True)

        messages: list[NormalizedMessage] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                messages.append(result)
        return HostedPage(messages=messages, next_token=next_token)

    async def get(self, creds: HostedCredentials, local_id: str) -> NormalizedMessage:
        async with self._client(creds) as client:
            detail = await self._request(client, "GET", f"/messages/{local_id}", params={"format": "full"})
            message = hosted_to_normalized(parse_hosted(detail), self.sanitizer)
            if message.unread:
                await self._mark_read(client, local_id)
        return message

    async def _mark_read(self, client: httpx.AsyncClient, local_id: str) -> None:
        """Best effort; a failure here never fails the read."""
        try:
            await self._request(
                client, "POST", f"/messages/{local_id}/modify", json={"removeLabelIds": ["UNREAD"]}
            )
            logger.debug(f"Marked Gmail message {local_id} as read")
        except (HostedUnavailable, MessageNotFound) as e:
            logger.warning(f"Could not mark Gmail message {local_id} as read: {e.code} {e.details}")

    # ---------- Outbound ----------

    async def send(self, creds: HostedCredentials, email: OutgoingEmail) -> str:
        msg = EmailMessage()
        msg["From"] = email.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content(email.html_body, subtype="html")
        raw = base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")

        async with self._client(creds) as client:
            try:
                data = await self._request(client, "POST", "/messages/send", json={"raw": raw})
            except HostedUnavailable as e:
                raise MailSendFailed(details=e.details, auth=e.reason == "auth") from e
            except MessageNotFound as e:
                raise MailSendFailed(details=e.details) from e
        return data.get("id", "")
