"""Delivery of magic links to invited addresses."""

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol, runtime_checkable

import structlog

from codeassess.config import Config
from codeassess.errors import DeliveryError

logger = structlog.get_logger(__name__)

MAGIC_LINK_SUBJECT = "Your Coding Challenge Invitation"


def render_magic_link_email(to: str, link: str, sender: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = MAGIC_LINK_SUBJECT
    message.set_content(
        "You have been invited to a coding challenge.\n\n"
        f"Sign in with this link:\n{link}\n\n"
        "The link works once and expires in 30 minutes. "
        "If you did not expect this email you can ignore it.\n"
    )
    return message


@runtime_checkable
class MagicLinkMailer(Protocol):
    async def send_magic_link(self, to: str, link: str) -> None: ...


@dataclass
class SentMail:
    to: str
    link: str
    message: EmailMessage


class OutboxMailer:
    """Keeps messages in memory instead of sending them.

    Used in tests and in development setups without an SMTP server.
    """

    def __init__(self, sender: str = "noreply@codeassess.local") -> None:
        self.sender = sender
        self.outbox: list[SentMail] = []

    async def send_magic_link(self, to: str, link: str) -> None:
        self.outbox.append(SentMail(to=to, link=link, message=render_magic_link_email(to, link, self.sender)))
        logger.info("magic_link_queued", to=to)


class SmtpMailer:
    """Sends magic links through an SMTP relay.

    smtplib is blocking, so each message is sent from a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls

    async def send_magic_link(self, to: str, link: str) -> None:
        message = render_magic_link_email(to, link, self.sender)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Could not send magic link to {to}") from e
        logger.info("magic_link_sent", to=to)

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)


def build_mailer(config: Config) -> MagicLinkMailer:
    if config.smtp_host:
        return SmtpMailer(
            config.smtp_host,
            config.smtp_port,
            config.mail_sender,
            username=config.smtp_username,
            password=config.smtp_password,
            starttls=config.smtp_starttls,
        )
    return OutboxMailer(config.mail_sender)
