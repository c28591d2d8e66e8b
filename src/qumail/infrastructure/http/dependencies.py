"""FastAPI dependencies: bearer authentication and mail component wiring."""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from qumail.application.use_cases.fetch_inbox import MailboxService
from qumail.application.use_cases.send_email import SendEmailUseCase
from qumail.domain.entities.user import UserRecord
from qumail.infrastructure.email.factory import MailFactory
from qumail.infrastructure.email.providers.gmail_api.auth import GoogleOAuthClient
from qumail.infrastructure.security.tokens import InvalidSessionToken, verify_token
from qumail.infrastructure.settings import get_settings
from qumail.infrastructure.sqlite.client import SQLiteUserStore, get_user_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_store() -> SQLiteUserStore:
    return get_user_store()


def get_factory(store: SQLiteUserStore = Depends(get_store)) -> MailFactory:
    return MailFactory(store=store, settings=get_settings())


def get_mailbox_service(factory: MailFactory = Depends(get_factory)) -> MailboxService:
    return factory.mailbox_service()


def get_send_use_case(factory: MailFactory = Depends(get_factory)) -> SendEmailUseCase:
    return factory.send_use_case()


def get_oauth_client(factory: MailFactory = Depends(get_factory)) -> GoogleOAuthClient:
    return factory.oauth_client()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: SQLiteUserStore = Depends(get_store),
) -> UserRecord:
    """Reject the request with 401 unless it carries a valid session token for a known user."""
    if credentials is None:
        raise _unauthorized("No authorization header provided")

    try:
        claims = verify_token(credentials.credentials)
    except InvalidSessionToken as e:
        logger.warning(f"Session token rejected: {e}")
        raise _unauthorized("Token verification failed")

    user = store.get(str(claims["sub"]))
    if user is None:
        logger.warning(f"Session token for unknown user {claims['sub']}")
        raise _unauthorized("User not found")
    return user
