"""SMTP delivery with app-password credentials."""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid

from loguru import logger

from qumail.application.ports.email_source import RawMailCredentials
from qumail.application.ports.mail_sender import OutgoingEmail
from qumail.domain.errors import MailSendFailed


class SmtpMailSender:
    def __init__(self, host: str = "smtp.gmail.com", port: int = 587, timeout: float = 30.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    async def send(self, creds: RawMailCredentials, email: OutgoingEmail) -> str:
        return await asyncio.to_thread(self._send_sync, creds, email)

    def _build(self, email: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = email.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(email.html_body, subtype="html")
        return msg

    def _send_sync(self, creds: RawMailCredentials, email: OutgoingEmail) -> str:
        msg = self._build(email)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls(context=ssl.create_default_context())
                smtp.login(creds.username, creds.secret)
                smtp.send_message(msg, from_addr=creds.username)
        except smtplib.SMTPAuthenticationError as e:
            logger.warning(f"SMTP login rejected for {creds.username}")
            raise MailSendFailed(
                "Invalid email credentials - please check your app password", details=str(e), auth=True
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send via {self.host}:{self.port} failed: {e}")
            raise MailSendFailed(details=str(e)) from e

        return msg["Message-ID"]
