"""Structured JSON responses for classified mail failures."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from qumail.domain.errors import MailError


async def mail_error_handler(request: Request, exc: MailError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MailError, mail_error_handler)
