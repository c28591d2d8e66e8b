"""Repeated single-message fetches through the mailbox service."""

from unittest.mock import AsyncMock

import httpx
import pytest

from qumail.application.use_cases.fetch_inbox import MailboxService
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.infrastructure.email.providers.gmail_api.client import GmailApiMailSource
from qumail.infrastructure.email.providers.imap.client import ImapMailSource

from conftest import InMemoryUserStore, build_rfc822
from test_gmail_client import BASE, resource
from test_imap_client import FakeMailbox, _patched_session


def _without_unread(message) -> dict:
    fields = message.to_dict()
    fields.pop("unread")
    return fields


@pytest.mark.asyncio
async def test_hosted_get_is_stable_except_read_state(oauth_user, sanitizer):
    state = {"unread": True}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            state["unread"] = False
            return httpx.Response(200, json={"id": "m1"})
        return httpx.Response(200, json=resource("m1", html="<p>same body</p>", unread=state["unread"]))

    gmail = GmailApiMailSource(sanitizer, base_url=BASE, transport=httpx.MockTransport(handler))
    service = MailboxService(
        resolver=CredentialResolver(InMemoryUserStore(oauth_user)), hosted=gmail, raw=AsyncMock()
    )

    first = await service.get_message(oauth_user, "hosted:m1")
    second = await service.get_message(oauth_user, "hosted:m1")

    assert first.unread is True
    assert second.unread is False
    assert _without_unread(first) == _without_unread(second)
    assert second.id == "hosted:m1"


@pytest.mark.asyncio
async def test_raw_get_is_stable(imap_user, sanitizer):
    conn = FakeMailbox({42: ("", build_rfc822(subject="twice", html="<p>body</p>", text="body"))})
    service = MailboxService(
        resolver=CredentialResolver(InMemoryUserStore(imap_user)),
        hosted=AsyncMock(),
        raw=ImapMailSource(sanitizer),
    )

    with _patched_session(conn):
        first = await service.get_message(imap_user, "raw:42")
        second = await service.get_message(imap_user, "raw:42")

    assert first == second
    assert first.id == "raw:42"
    assert conn.fetched == ["42", "42"]


@pytest.mark.asyncio
async def test_listed_hosted_ids_fetch_back(oauth_user, sanitizer):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/messages"):
            return httpx.Response(200, json={"messages": [{"id": "a"}, {"id": "b"}]})
        return httpx.Response(200, json=resource(request.url.path.rsplit("/", 1)[-1]))

    gmail = GmailApiMailSource(sanitizer, base_url=BASE, transport=httpx.MockTransport(handler))
    service = MailboxService(
        resolver=CredentialResolver(InMemoryUserStore(oauth_user)), hosted=gmail, raw=AsyncMock()
    )

    page = await service.list_inbox(oauth_user)

    assert [m.id for m in page.emails] == ["hosted:a", "hosted:b"]
    for listed in page.emails:
        fetched = await service.get_message(oauth_user, listed.id)
        assert fetched == listed
