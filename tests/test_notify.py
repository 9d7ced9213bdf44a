# tests/test_notify.py
import smtplib
from unittest import mock

import requests

from jobsniper.config import NotifyConfig, Settings
from jobsniper.notify import (
    ConsoleNotifier,
    EmailNotifier,
    TelegramNotifier,
    build_notifier,
)

MESSAGE = "\U0001f6a8 New Jobs Found:\n\n• Dev @ Acme\nhttps://x.io/a"


def _set_smtp(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_USER", "bot@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "pw")
    monkeypatch.setenv("TO_EMAIL", "me@example.com")


# ----------------------------------------------------------------------
# Telegram
# ----------------------------------------------------------------------
def test_telegram_posts_form_encoded_message():
    resp = mock.Mock()
    resp.raise_for_status.return_value = None
    with mock.patch("jobsniper.notify.requests.post", return_value=resp) as post:
        ok = TelegramNotifier(token="123:abc", chat_id="42").send(MESSAGE)

    assert ok is True
    url = post.call_args.args[0]
    data = post.call_args.kwargs["data"]
    assert url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert data == {"chat_id": "42", "text": MESSAGE, "disable_web_page_preview": "true"}


def test_telegram_failure_returns_false_and_hides_token(caplog):
    with mock.patch("jobsniper.notify.requests.post", side_effect=requests.ConnectionError("bot123:abc unreachable")):
        ok = TelegramNotifier(token="123:abc", chat_id="42").send(MESSAGE)

    assert ok is False
    assert "123:abc" not in caplog.text


def test_telegram_unconfigured_returns_false():
    with mock.patch("jobsniper.notify.requests.post") as post:
        assert TelegramNotifier().send(MESSAGE) is False
    post.assert_not_called()


# ----------------------------------------------------------------------
# Email
# ----------------------------------------------------------------------
def test_email_builds_plain_and_html_parts(monkeypatch):
    _set_smtp(monkeypatch)
    msg = EmailNotifier().build(MESSAGE)

    plain, html = msg.get_payload()
    assert msg["To"] == "me@example.com"
    assert msg["From"] == "bot@example.com"
    assert plain.get_content_type() == "text/plain"
    assert html.get_content_type() == "text/html"
    body = html.get_payload(decode=True).decode("utf-8")
    assert '<a href="https://x.io/a"' in body
    assert "• Dev @ Acme" in body


def test_email_sends_over_starttls(monkeypatch):
    _set_smtp(monkeypatch)
    with mock.patch("jobsniper.notify.smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value.__enter__.return_value
        assert EmailNotifier().send(MESSAGE) is True

    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("bot@example.com", "pw")
    assert server.sendmail.call_args.args[:2] == ("bot@example.com", ["me@example.com"])


def test_email_failure_returns_false(monkeypatch):
    _set_smtp(monkeypatch)
    with mock.patch("jobsniper.notify.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
        assert EmailNotifier().send(MESSAGE) is False


# ----------------------------------------------------------------------
# Channel selection
# ----------------------------------------------------------------------
def _settings(channel):
    return Settings(notify=NotifyConfig(channel=channel))


def test_auto_prefers_telegram_then_email_then_console(monkeypatch):
    assert isinstance(build_notifier(_settings("auto")), ConsoleNotifier)

    _set_smtp(monkeypatch)
    assert isinstance(build_notifier(_settings("auto")), EmailNotifier)

    monkeypatch.setenv("TG_TOKEN", "t")
    monkeypatch.setenv("TG_CHAT", "c")
    assert isinstance(build_notifier(_settings("auto")), TelegramNotifier)


def test_explicit_channel_is_honored():
    assert isinstance(build_notifier(_settings("email")), EmailNotifier)
    assert isinstance(build_notifier(_settings("console")), ConsoleNotifier)
    assert isinstance(build_notifier(_settings("pigeon")), ConsoleNotifier)


def test_console_notifier_logs(caplog):
    caplog.set_level("INFO")
    assert ConsoleNotifier().send(MESSAGE) is True
    assert "Dev @ Acme" in caplog.text
