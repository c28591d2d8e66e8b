from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol

from qumail.application.ports.email_source import HostedCredentials, RawMailCredentials


@dataclass(frozen=True)
class OutgoingEmail:
    sender: str
    to: str
    subject: str
    html_body: str


class HostedMailSender(Protocol):
    async def send(self, creds: HostedCredentials, email: OutgoingEmail) -> str: ...


class RawMailSender(Protocol):
    async def send(self, creds: RawMailCredentials, email: OutgoingEmail) -> str: ...
