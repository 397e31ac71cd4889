from __future__ import annotations

import logging
import smtplib
import subprocess
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

import click

logger = logging.getLogger(__name__)

DEFAULT_BODY = "Hey there, it's Secret Santa.  Get a gift for {recipient}!"


class DeliveryError(RuntimeError):
    def __init__(self, giver: str, address: str):
        super().__init__(f"Could not deliver assignment mail for {giver} to {address}.")
        self.giver = giver
        self.address = address


@dataclass(frozen=True)
class MailSettings:
    sender: str
    reply_to: str
    subject: str = "Secret Santa"
    body_template: str = DEFAULT_BODY

    def __post_init__(self):
        try:
            self.body_template.format(giver="giver", recipient="recipient")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid SANTA_MAIL_BODY {self.body_template!r}: {e!r}") from e

    @classmethod
    def from_config(cls, config) -> "MailSettings":
        sender = config["SANTA_MAIL_FROM"]
        return cls(
            sender=sender,
            reply_to=config.get("SANTA_MAIL_REPLY_TO") or sender,
            subject=config.get("SANTA_MAIL_SUBJECT") or "Secret Santa",
            body_template=config.get("SANTA_MAIL_BODY") or DEFAULT_BODY,
        )


@dataclass
class DeliveryReport:
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def compose_message(settings: MailSettings, giver_name: str, giver_contact: str, recipient_name: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.sender
    msg["Reply-To"] = settings.reply_to
    msg["To"] = formataddr((giver_name, giver_contact))
    msg["Subject"] = settings.subject
    msg.set_content(settings.body_template.format(giver=giver_name, recipient=recipient_name))
    return msg


class Transport(Protocol):
    def send(self, message: EmailMessage) -> bool: ...


class SendmailTransport:
    """Hands the message to the local delivery agent."""

    def __init__(self, path: str = "/usr/sbin/sendmail"):
        self.path = path

    def send(self, message: EmailMessage) -> bool:
        try:
            proc = subprocess.run(
                [self.path, "-t", "-i"],
                input=message.as_bytes(),
                capture_output=True,
                check=False,
            )
        except OSError as e:
            logger.error("Could not run %s: %s", self.path, e)
            return False
        if proc.returncode != 0:
            logger.error(
                "%s exited with %d: %s",
                self.path, proc.returncode, proc.stderr.decode("utf-8", "replace").strip(),
            )
            return False
        return True


class SMTPTransport:
    def __init__(self, host: str, port: int = 25, username: str | None = None,
                 password: str | None = None, starttls: bool = False):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls

    def send(self, message: EmailMessage) -> bool:
        try:
            with smtplib.SMTP(self.host, self.port) as server:
                if self.starttls:
                    server.starttls()
                if self.username:
                    if not self.starttls:
                        logger.warning("Sending SMTP credentials to %s without STARTTLS", self.host)
                    server.login(self.username, self.password or "")
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", message["To"], e)
            return False
        return True


class ConsoleTransport:
    """Prints messages instead of sending them (dry runs)."""

    def __init__(self, echo=click.echo):
        self.echo = echo

    def send(self, message: EmailMessage) -> bool:
        self.echo(message.as_string())
        return True


def transport_from_config(config) -> Transport:
    kind = (config.get("SANTA_MAIL_TRANSPORT") or "sendmail").strip().lower()
    if kind == "sendmail":
        return SendmailTransport(config.get("SANTA_SENDMAIL_PATH") or "/usr/sbin/sendmail")
    if kind == "smtp":
        return SMTPTransport(
            host=config.get("SANTA_SMTP_HOST") or "localhost",
            port=int(config.get("SANTA_SMTP_PORT") or 25),
            username=config.get("SANTA_SMTP_USERNAME") or None,
            password=config.get("SANTA_SMTP_PASSWORD") or None,
            starttls=bool(config.get("SANTA_SMTP_STARTTLS")),
        )
    if kind == "console":
        return ConsoleTransport()
    raise ValueError(f"Unknown mail transport: {kind!r}")


def notify_all(
    assignment: dict[str, tuple[str, str]],
    settings: MailSettings,
    transport: Transport,
    abort_on_failure: bool = True,
    on_sent=None,
) -> DeliveryReport:
    """
    Send one mail per giver.

    With abort_on_failure the first failed send raises DeliveryError;
    otherwise failures are collected in the report for the caller to surface.
    """
    report = DeliveryReport()
    for giver, (contact, recipient) in assignment.items():
        msg = compose_message(settings, giver, contact, recipient)
        if transport.send(msg):
            logger.info("Notified %s", giver)
            report.sent.append(giver)
            if on_sent:
                on_sent(giver, recipient)
            continue

        logger.error("Delivery to %s <%s> failed", giver, contact)
        if abort_on_failure:
            raise DeliveryError(giver, contact)
        report.failed.append(giver)
    return report
