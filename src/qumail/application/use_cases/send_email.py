"""Send mail with whichever credential set the resolver supplies."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from qumail.application.ports.mail_sender import HostedMailSender, OutgoingEmail, RawMailSender
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.domain.entities.user import UserRecord


@dataclass(frozen=True)
class SendResult:
    message_id: str
    via: str


class SendEmailUseCase:
    def __init__(
        self,
        resolver: CredentialResolver,
        hosted: HostedMailSender,
        raw: RawMailSender,
    ) -> None:
        self.resolver = resolver
        self.hosted = hosted
        self.raw = raw

    async def run(self, user: UserRecord, to: str, subject: str, body: str) -> SendResult:
        creds = await self.resolver.resolve(user)
        email = OutgoingEmail(sender=user.email, to=to, subject=subject, html_body=body)

        if creds.hosted is not None:
            message_id = await self.hosted.send(creds.hosted, email)
            via = "hosted"
        else:
            assert creds.raw is not None
            message_id = await self.raw.send(creds.raw, email)
            via = "raw"

        logger.info(f"Email sent for user {user.id} via {via}, message_id={message_id}")
        return SendResult(message_id=message_id, via=via)
