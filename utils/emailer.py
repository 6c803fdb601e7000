"""
Outbound email with ranked delivery channels.

Each channel exposes ``name`` and ``send(message) -> DeliveryResult``. The
dispatcher tries the configured channels in order and reports the first one
that accepted the message.
"""

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from typing import Optional, Sequence

import requests

from utils.logger import get_logger

log = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: Optional[str] = None


@dataclass
class DeliveryResult:
    success: bool
    method: Optional[str] = None
    error: Optional[str] = None
    message_id: Optional[str] = None


class ResendChannel:
    name = "resend"

    def __init__(self, api_key: Optional[str], from_email: str, timeout: int = 10) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, message: EmailMessage) -> DeliveryResult:
        payload = {
            "from": self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            resp = requests.post(RESEND_API_URL, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            return DeliveryResult(False, self.name, error=str(exc))

        if resp.status_code >= 400:
            return DeliveryResult(False, self.name, error=f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            message_id = resp.json().get("id")
        except ValueError:
            message_id = None
        return DeliveryResult(True, self.name, message_id=message_id)


class SmtpChannel:
    name = "smtp"

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        use_tls: bool = True,
        timeout: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.from_email)

    def send(self, message: EmailMessage) -> DeliveryResult:
        msg = MimeMessage()
        msg["From"] = f"Rentverse Security <{self.from_email}>"
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.text or "Please view this message in an HTML-capable client.")
        msg.add_alternative(message.html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            return DeliveryResult(False, self.name, error=str(exc))
        return DeliveryResult(True, self.name)


class ConsoleChannel:
    """Writes the message to the log instead of sending it. Development only."""

    name = "console"
    enabled = True

    def send(self, message: EmailMessage) -> DeliveryResult:
        log.warning("email_console_delivery", to=message.to, subject=message.subject, body=message.text)
        return DeliveryResult(True, self.name)


class EmailDispatcher:
    def __init__(self, channels: Sequence) -> None:
        self.channels = list(channels)

    def deliver(self, message: EmailMessage) -> DeliveryResult:
        last_error = "No email channel configured"
        for channel in self.channels:
            if not getattr(channel, "enabled", True):
                continue
            try:
                result = channel.send(message)
            except Exception as exc:  # fall through to the next channel
                log.exception("email_channel_crashed", channel=channel.name)
                result = DeliveryResult(False, channel.name, error=str(exc))

            if result.success:
                log.info("email_sent", channel=channel.name, to=message.to, message_id=result.message_id)
                return result

            log.warning("email_channel_failed", channel=channel.name, to=message.to, error=result.error)
            last_error = result.error or last_error

        return DeliveryResult(False, None, error=last_error)


def build_dispatcher(config) -> EmailDispatcher:
    channels = [
        ResendChannel(config.get("RESEND_API_KEY"), config.get("RESEND_FROM_EMAIL")),
        SmtpChannel(
            host=config.get("SMTP_HOST"),
            port=config.get("SMTP_PORT", 587),
            username=config.get("SMTP_USERNAME"),
            password=config.get("SMTP_PASSWORD"),
            from_email=config.get("SMTP_FROM_EMAIL"),
            use_tls=config.get("SMTP_USE_TLS", True),
        ),
    ]
    if config.get("EMAIL_CONSOLE_FALLBACK"):
        channels.append(ConsoleChannel())
    return EmailDispatcher(channels)
