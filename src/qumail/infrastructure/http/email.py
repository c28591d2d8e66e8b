"""Mail endpoints: unified inbox, single message, send."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from qumail.application.use_cases.fetch_inbox import MailboxService
from qumail.application.use_cases.send_email import SendEmailUseCase
from qumail.domain.entities.user import UserRecord
from qumail.infrastructure.http.dependencies import (
    get_current_user,
    get_mailbox_service,
    get_send_use_case,
)
from qumail.infrastructure.settings import get_settings

router = APIRouter(prefix="/email", tags=["email"])


# ============================================================================
# Response Models
# ============================================================================


class AttachmentOut(BaseModel):
    filename: str
    contentType: str
    size: int


class EmailOut(BaseModel):
    """A normalized message; `body` is sanitized HTML."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    threadId: str | None = None
    from_: str = Field("", alias="from")
    to: str = ""
    subject: str = ""
    date: str = ""
    body: str = ""
    snippet: str = ""
    unread: bool = False
    attachments: list[AttachmentOut] = Field(default_factory=list)


class ErrorOut(BaseModel):
    code: str
    message: str
    details: str | None = None


class InboxResponse(BaseModel):
    emails: list[EmailOut]
    nextPageToken: str | None = None
    hasMore: bool = False
    source: str | None = None
    approximatePagination: bool = False
    error: ErrorOut | None = None


class SendRequest(BaseModel):
    to: str = Field(..., description="Recipient address")
    subject: str = Field("", description="Subject line")
    body: str = Field("", description="HTML body")


class SendResponse(BaseModel):
    success: bool
    messageId: str
    message: str


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/inbox", response_model=InboxResponse, response_model_by_alias=True)
async def get_inbox(
    q: str | None = Query(None, description="Gmail search expression"),
    page_token: str | None = Query(None, alias="pageToken"),
    limit: int | None = Query(None),
    user: UserRecord = Depends(get_current_user),
    service: MailboxService = Depends(get_mailbox_service),
) -> InboxResponse:
    """
    One page of the user's inbox from Gmail, falling back to IMAP.

    Failures that leave the inbox empty are reported in `error` with a
    machine-readable code rather than as an HTTP error.
    """
    settings = get_settings()
    size = settings.default_inbox_limit if limit is None else limit
    size = max(1, min(size, settings.max_inbox_limit))

    page = await service.list_inbox(user, query=q or None, page_token=page_token, limit=size)
    logger.info(
        f"Inbox for user {user.id}: {len(page.emails)} emails from {page.source or 'nowhere'}"
        + (f" ({page.error.code})" if page.error else "")
    )
    return InboxResponse.model_validate(page.to_dict())


@router.get("/message/{message_id}", response_model=EmailOut, response_model_by_alias=True)
async def get_message(
    message_id: str,
    user: UserRecord = Depends(get_current_user),
    service: MailboxService = Depends(get_mailbox_service),
) -> EmailOut:
    """A single message by namespaced id; Gmail messages are marked read as a side effect."""
    message = await service.get_message(user, message_id)
    return EmailOut.model_validate(message.to_dict())


@router.post("/send", response_model=SendResponse)
async def send_email(
    request: SendRequest,
    user: UserRecord = Depends(get_current_user),
    use_case: SendEmailUseCase = Depends(get_send_use_case),
) -> SendResponse:
    if not request.to.strip():
        raise HTTPException(status_code=400, detail="Recipient is required")

    result = await use_case.run(user, to=request.to, subject=request.subject, body=request.body)
    return SendResponse(success=True, messageId=result.message_id, message="Email sent successfully!")
