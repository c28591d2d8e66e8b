"""One-shot inbox fetch for a stored user, for diagnosing credential problems."""

from __future__ import annotations

import argparse
import asyncio

from qumail.infrastructure import get_mail_factory, get_settings, get_user_store


async def _run(email: str, limit: int, query: str | None) -> int:
    user = get_user_store().get_by_email(email)
    if user is None:
        print(f"No stored user for {email}")
        return 1

    service = get_mail_factory().mailbox_service()
    page = await service.list_inbox(user, query=query, page_token=None, limit=limit)

    if page.error is not None:
        print(f"Error: {page.error.code} - {page.error.message}")
    print(f"Source: {page.source or 'none'}  emails: {len(page.emails)}  more: {page.has_more}")
    for message in page.emails:
        marker = "*" if message.unread else " "
        print(f"{marker} {message.id}  {message.date}  {message.sender}  {message.subject}")
    if page.next_page_token:
        print(f"Next page token: {page.next_page_token}")
    return 0 if page.error is None or page.emails else 2


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Fetch one inbox page for a stored user")
    parser.add_argument("--email", required=True, help="Address of a user already in the store")
    parser.add_argument("--limit", type=int, default=settings.default_inbox_limit, help="Page size")
    parser.add_argument("--query", default=None, help="Gmail search expression (hosted only)")
    args = parser.parse_args()

    limit = max(1, min(args.limit, settings.max_inbox_limit))
    return asyncio.run(_run(args.email, limit, args.query))


if __name__ == "__main__":
    raise SystemExit(main())
