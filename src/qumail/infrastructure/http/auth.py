"""Login endpoints that provision mailbox credentials and issue session tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from qumail.infrastructure.email.providers.gmail_api.auth import GoogleOAuthClient
from qumail.infrastructure.http.dependencies import get_oauth_client, get_store
from qumail.infrastructure.security.tokens import issue_token
from qumail.infrastructure.settings import get_settings
from qumail.infrastructure.sqlite.client import SQLiteUserStore

router = APIRouter(prefix="/auth", tags=["auth"])

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


# ============================================================================
# Request/Response Models
# ============================================================================


class AppLoginRequest(BaseModel):
    """App-password login for IMAP/SMTP mailboxes."""

    email: str = Field(..., description="Mailbox address")
    appPassword: str = Field(..., description="App password for IMAP/SMTP")
    imapHost: str | None = Field(None, description="IMAP host (defaults to Gmail)")
    imapPort: int | None = Field(None, description="IMAP port (defaults to 993)")


class GoogleLoginRequest(BaseModel):
    """OAuth token set obtained by the frontend's Google sign-in."""

    accessToken: str
    refreshToken: str | None = None
    expiresIn: int | None = Field(None, description="Access token lifetime in seconds")


class LoginResponse(BaseModel):
    message: str
    token: str
    user: dict[str, str | None]


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/app-login", response_model=LoginResponse)
async def app_login(
    request: AppLoginRequest,
    store: SQLiteUserStore = Depends(get_store),
) -> LoginResponse:
    """
    Store app-password credentials and return a session token.

    The credentials are not checked against the server here; a wrong password
    shows up as IMAP_AUTH_FAILED on the first inbox fetch.
    """
    if not request.email.strip() or not request.appPassword.strip():
        raise HTTPException(status_code=400, detail="Missing email or appPassword")

    settings = get_settings()
    user = store.upsert_app_password(
        email=request.email,
        app_password=request.appPassword,
        imap_host=request.imapHost or settings.imap_default_host,
        imap_port=request.imapPort or settings.imap_default_port,
        imap_secure=True,
    )
    logger.info(f"App-password login for {user.email}")
    return LoginResponse(message="success", token=issue_token(user), user=user.public_profile())


@router.post("/google", response_model=LoginResponse)
async def google_login(
    request: GoogleLoginRequest,
    store: SQLiteUserStore = Depends(get_store),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
) -> LoginResponse:
    """Look up the Google profile for an access token, store the token set, return a session token."""
    profile = await oauth.userinfo(request.accessToken)
    email = profile.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Google profile has no email address")

    lifetime = request.expiresIn or DEFAULT_TOKEN_LIFETIME_SECONDS
    user = store.upsert_oauth(
        email=email,
        access_token=request.accessToken,
        token_expiry=datetime.now(timezone.utc) + timedelta(seconds=lifetime),
        refresh_token=request.refreshToken,
        name=profile.get("name"),
        image=profile.get("picture"),
    )
    logger.info(f"Google login for {user.email}")
    return LoginResponse(message="success", token=issue_token(user), user=user.public_profile())
