"""Deliver rendered messages: Telegram, email (HTML + plain) or the log."""
from __future__ import annotations

import html
import re
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests

from jobsniper.config import Settings, get_env
from jobsniper.log import get_logger
from jobsniper.retry import retry

log = get_logger(__name__)

TELEGRAM_API = "https://api.telegram.org/bot{token}/sendMessage"

_URL = re.compile(r"^https?://\S+$")


class Notifier(ABC):
    name = ""

    @abstractmethod
    def send(self, message: str) -> bool:
        """Deliver one message; return False instead of raising on failure."""


class ConsoleNotifier(Notifier):
    name = "console"

    def send(self, message: str) -> bool:
        log.info("Notification:\n%s", message)
        return True


class TelegramNotifier(Notifier):
    name = "telegram"

    def __init__(self, token: str = "", chat_id: str = "", timeout: float = 15.0) -> None:
        self.token = token or get_env("TG_TOKEN")
        self.chat_id = chat_id or get_env("TG_CHAT")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.token and self.chat_id)

    @retry(max_attempts=3, base_delay=2.0)
    def _post(self, message: str) -> None:
        try:
            r = requests.post(
                TELEGRAM_API.format(token=self.token),
                data={"chat_id": self.chat_id, "text": message, "disable_web_page_preview": "true"},
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as exc:
            # the bot token is part of the URL; keep it out of every log line
            exc.args = (str(exc).replace(self.token, "***"),)
            raise

    def send(self, message: str) -> bool:
        if not self.configured:
            log.warning("Telegram not configured (set TG_TOKEN and TG_CHAT in .env)")
            return False
        try:
            self._post(message)
        except requests.RequestException as exc:
            log.error("Telegram send failed: %s", str(exc)[:150])
            return False
        log.info("Telegram message sent (%d chars)", len(message))
        return True


def _message_to_html(text: str) -> str:
    """Render the bullet/link message body as simple HTML."""
    parts: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            parts.append("<br>")
        elif _URL.match(stripped):
            url = html.escape(stripped, quote=True)
            parts.append(f'<div style="margin:0 0 2px 16px"><a href="{url}" style="color:#1a73e8">{url}</a></div>')
        elif stripped.startswith("• "):
            parts.append(f'<div style="margin:6px 0 0;font-weight:600">{html.escape(stripped)}</div>')
        else:
            parts.append(f'<h2 style="margin:0 0 8px;color:#2c3e50">{html.escape(stripped)}</h2>')
    return "\n".join(parts)


class EmailNotifier(Notifier):
    name = "email"

    def __init__(self) -> None:
        self.host = get_env("SMTP_HOST")
        try:
            self.port = int(get_env("SMTP_PORT", "587") or 587)
        except ValueError:
            self.port = 587
        self.user = get_env("SMTP_USER")
        self.password = get_env("SMTP_PASSWORD")
        self.from_addr = get_env("FROM_EMAIL") or self.user
        self.to_addr = get_env("TO_EMAIL")

    @property
    def configured(self) -> bool:
        return all([self.host, self.user, self.password, self.to_addr])

    @retry(max_attempts=3, base_delay=3.0, retryable=(smtplib.SMTPException, OSError))
    def _smtp_send(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            server.starttls()
            server.login(self.user, self.password)
            server.sendmail(self.from_addr, [self.to_addr], msg.as_string())

    def build(self, message: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"New Jobs – {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC"
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        body = (
            '<div style="font-family:-apple-system,BlinkMacSystemFont,\'Segoe UI\',Roboto,sans-serif;'
            'max-width:900px;margin:0 auto;padding:16px;color:#333">\n'
            f"{_message_to_html(message)}\n</div>"
        )
        msg.attach(MIMEText(message, "plain", "utf-8"))
        msg.attach(MIMEText(body, "html", "utf-8"))
        return msg

    def send(self, message: str) -> bool:
        if not self.configured:
            log.warning("SMTP not configured (set SMTP_HOST, SMTP_USER, SMTP_PASSWORD, TO_EMAIL in .env)")
            return False
        try:
            self._smtp_send(self.build(message))
        except (smtplib.SMTPException, OSError) as exc:
            log.error("Email failed: %s", str(exc)[:150])
            return False
        log.info("Email sent to %s", self.to_addr)
        return True


def build_notifier(settings: Settings) -> Notifier:
    channel = settings.notify.channel
    if channel == "telegram":
        return TelegramNotifier(timeout=settings.http_timeout)
    if channel == "email":
        return EmailNotifier()
    if channel == "console":
        return ConsoleNotifier()
    if channel != "auto":
        log.warning("Unknown notify channel %r, picking automatically", channel)

    tg = TelegramNotifier(timeout=settings.http_timeout)
    if tg.configured:
        return tg
    email = EmailNotifier()
    if email.configured:
        return email
    log.info("No Telegram or SMTP credentials, printing notifications to the log")
    return ConsoleNotifier()
