"""Hosted-first inbox with IMAP fallback."""

from unittest.mock import AsyncMock

import pytest
from loguru import logger

from qumail.application.ports.email_source import HostedPage, RawMailCredentials, ResolvedCredentials
from qumail.application.use_cases.fetch_inbox import MailboxService
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.entities.user import UserRecord
from qumail.domain.errors import (
    HostedUnavailable,
    InvalidMessageId,
    InvalidPageToken,
    NoCredentials,
    RawMailUnavailable,
)

from conftest import InMemoryUserStore


def _msg(local_id: str, subject: str = "s") -> NormalizedMessage:
    return NormalizedMessage(
        id=local_id, thread_id=None, sender="a@example.com", to="b@example.com",
        subject=subject, date="", body="<p>x</p>", snippet="x",
    )


def _service(user: UserRecord, hosted=None, raw=None, **kwargs) -> MailboxService:
    return MailboxService(
        resolver=CredentialResolver(InMemoryUserStore(user)),
        hosted=hosted or AsyncMock(),
        raw=raw or AsyncMock(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_hosted_success_skips_raw(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.return_value = HostedPage(messages=[_msg("m1"), _msg("m2")], next_token="tok2")

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user, limit=2)

    assert [m.id for m in page.emails] == ["hosted:m1", "hosted:m2"]
    assert page.source == "hosted"
    assert page.next_page_token == "hosted:tok2"
    assert page.has_more
    hosted.list.assert_awaited_once()
    assert hosted.list.await_args.args[1] == "in:inbox"
    raw.list.assert_not_called()


@pytest.mark.asyncio
async def test_hosted_failure_falls_back_to_raw(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.side_effect = HostedUnavailable("auth")
    raw.list.return_value = [_msg("12"), _msg("11")]

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user, limit=20)

    assert [m.id for m in page.emails] == ["raw:12", "raw:11"]
    assert page.source == "raw"
    assert page.approximate_pagination
    assert page.error is None


@pytest.mark.asyncio
async def test_empty_hosted_falls_back_by_default(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.return_value = HostedPage(messages=[], next_token=None)
    raw.list.return_value = [_msg("5")]

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user)

    assert page.source == "raw"
    raw.list.assert_awaited_once()


@pytest.mark.asyncio
async def test_empty_hosted_kept_when_fallback_disabled(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.return_value = HostedPage(messages=[], next_token=None)

    page = await _service(dual_user, hosted, raw, fallback_on_empty=False).list_inbox(dual_user)

    assert page.source == "hosted"
    assert page.emails == []
    raw.list.assert_not_called()


@pytest.mark.asyncio
async def test_both_fail_reports_raw_error(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.side_effect = HostedUnavailable("unreachable")
    raw.list.side_effect = RawMailUnavailable("auth")

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user)

    assert page.emails == []
    assert page.error.code == "IMAP_AUTH_FAILED"
    assert page.to_dict()["error"]["code"] == "IMAP_AUTH_FAILED"


@pytest.mark.asyncio
async def test_hosted_only_failure_is_reported(oauth_user):
    hosted = AsyncMock()
    hosted.list.side_effect = HostedUnavailable("auth")

    page = await _service(oauth_user, hosted).list_inbox(oauth_user)

    assert page.error.code == "HOSTED_AUTH_FAILED"


@pytest.mark.asyncio
async def test_no_credentials_makes_no_calls():
    user = UserRecord(id="u-0", email="nobody@example.com")
    hosted, raw = AsyncMock(), AsyncMock()

    page = await _service(user, hosted, raw).list_inbox(user)

    assert isinstance(page.error, NoCredentials)
    hosted.list.assert_not_called()
    raw.list.assert_not_called()


@pytest.mark.asyncio
async def test_hosted_cursor_never_falls_back(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.side_effect = HostedUnavailable("unreachable")

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user, page_token="hosted:tok2", limit=5)

    assert hosted.list.await_args.args[2] == "tok2"
    assert page.error.code == "HOSTED_UNREACHABLE"
    raw.list.assert_not_called()


@pytest.mark.asyncio
async def test_raw_cursor_uses_offset(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    raw.list.return_value = [_msg("3")]

    page = await _service(dual_user, hosted, raw).list_inbox(dual_user, page_token="raw:20", limit=10)

    raw.list.assert_awaited_once()
    assert raw.list.await_args.kwargs["offset"] == 20
    assert page.emails[0].id == "raw:3"
    hosted.list.assert_not_called()


@pytest.mark.asyncio
async def test_bad_page_token_rejected(dual_user):
    with pytest.raises(InvalidPageToken):
        await _service(dual_user).list_inbox(dual_user, page_token="garbage")


@pytest.mark.asyncio
async def test_get_dispatches_by_namespace(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.get.return_value = _msg("m1", subject="from gmail")
    raw.get_by_local_id.return_value = _msg("12", subject="from imap")
    service = _service(dual_user, hosted, raw)

    listed = await service.get_message(dual_user, "raw:12")
    assert listed.id == "raw:12"
    assert listed.subject == "from imap"
    assert raw.get_by_local_id.await_args.args[1] == "12"

    gmail = await service.get_message(dual_user, "hosted:m1")
    assert gmail.id == "hosted:m1"
    hosted.get.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_requires_matching_credentials(oauth_user):
    with pytest.raises(NoCredentials):
        await _service(oauth_user).get_message(oauth_user, "raw:12")


@pytest.mark.asyncio
async def test_get_rejects_unnamespaced_id(dual_user):
    with pytest.raises(InvalidMessageId):
        await _service(dual_user).get_message(dual_user, "12")


@pytest.mark.asyncio
async def test_unreachable_refresh_falls_back_to_raw(dual_user):
    resolver = AsyncMock()
    resolver.resolve.return_value = ResolvedCredentials(
        raw=RawMailCredentials(host="imap.example.com", port=993, username="dave@example.com", secret="pw"),
        hosted_error=HostedUnavailable("unreachable"),
    )
    hosted, raw = AsyncMock(), AsyncMock()
    raw.list.return_value = [_msg("9")]

    page = await MailboxService(resolver=resolver, hosted=hosted, raw=raw).list_inbox(dual_user)

    assert page.source == "raw"
    assert [m.id for m in page.emails] == ["raw:9"]
    hosted.list.assert_not_called()


@pytest.mark.asyncio
async def test_hosted_error_logged_when_raw_also_fails(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.side_effect = HostedUnavailable("unreachable")
    raw.list.side_effect = RawMailUnavailable("unreachable")
    warnings: list[str] = []
    sink = logger.add(lambda m: warnings.append(str(m)), level="WARNING")
    try:
        page = await _service(dual_user, hosted, raw).list_inbox(dual_user)
    finally:
        logger.remove(sink)

    assert page.error.code == "IMAP_CONNECTION_FAILED"
    assert any("HOSTED_UNREACHABLE" in w for w in warnings)


@pytest.mark.asyncio
async def test_every_listed_id_round_trips_through_get(dual_user):
    hosted, raw = AsyncMock(), AsyncMock()
    hosted.list.side_effect = HostedUnavailable("auth")
    raw.list.return_value = [_msg("14"), _msg("13"), _msg("12")]
    raw.get_by_local_id.side_effect = lambda creds, local_id: _msg(local_id)
    service = _service(dual_user, hosted, raw)

    page = await service.list_inbox(dual_user)

    assert page.emails
    for listed in page.emails:
        fetched = await service.get_message(dual_user, listed.id)
        assert fetched.id == listed.id
    assert [c.args[1] for c in raw.get_by_local_id.await_args_list] == ["14", "13", "12"]
