"""Tests for the SMTP mail gateway."""

import asyncio
import smtplib

import pytest

from stock_assistant.config import Config
from stock_assistant.domain.models import HoldingSummary, Quote
from stock_assistant.notifications.mailer import EmailNotifier


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, fail_with=None):
        self.host = host
        self.port = port
        self.calls = []
        self.sent = []
        self.fail_with = fail_with
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))
        if self.fail_with:
            raise self.fail_with

    def send_message(self, msg):
        self.calls.append("send_message")
        self.sent.append(msg)


@pytest.fixture(autouse=True)
def reset_instances():
    FakeSMTP.instances = []


def configured(**overrides):
    values = {
        "email_user": "bot@example.com",
        "email_app_password": "app-pass",
        "notification_email": "owner@example.com",
    }
    values.update(overrides)
    return Config(**values)


QUOTE = Quote(symbol="AAPL", name="Apple Inc.", price=190.5, change=2.0, change_percent=1.06)


def test_sends_over_starttls_to_default_recipient():
    notifier = EmailNotifier(configured(), smtp_factory=FakeSMTP)

    assert asyncio.run(notifier.send_price_alert(QUOTE)) is True

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.gmail.com", 587)
    assert smtp.calls == ["starttls", ("login", "bot@example.com", "app-pass"), "send_message"]
    msg = smtp.sent[0]
    assert msg["To"] == "owner@example.com"
    assert msg["Subject"] == "📊 AAPL Stock Alert - $190.50"


def test_explicit_recipient_wins():
    notifier = EmailNotifier(configured(), smtp_factory=FakeSMTP)
    asyncio.run(notifier.send_price_alert(QUOTE, "someone@example.com"))
    assert FakeSMTP.instances[0].sent[0]["To"] == "someone@example.com"


def test_missing_credentials_returns_false():
    notifier = EmailNotifier(configured(email_app_password=None), smtp_factory=FakeSMTP)
    assert asyncio.run(notifier.send_price_alert(QUOTE)) is False
    assert FakeSMTP.instances == []


def test_missing_recipient_returns_false():
    notifier = EmailNotifier(configured(notification_email=None), smtp_factory=FakeSMTP)
    assert asyncio.run(notifier.send_price_alert(QUOTE)) is False
    assert FakeSMTP.instances == []


def test_smtp_failure_returns_false():
    def factory(host, port, timeout=None):
        return FakeSMTP(host, port, timeout, fail_with=smtplib.SMTPAuthenticationError(535, b"bad credentials"))

    notifier = EmailNotifier(configured(), smtp_factory=factory)
    assert asyncio.run(notifier.send_price_alert(QUOTE)) is False


def test_connection_error_returns_false():
    def factory(host, port, timeout=None):
        raise ConnectionRefusedError("no route")

    notifier = EmailNotifier(configured(), smtp_factory=factory)
    assert asyncio.run(notifier.send_price_alert(QUOTE)) is False


def test_portfolio_alert_body():
    stock = HoldingSummary(
        symbol="TSLA", shares=3, purchase_price=250.0, current_price=220.0, invested=750.0,
        current_value=660.0, profit=-90.0, profit_percent=-12.0, change_today=-2.5,
    )
    notifier = EmailNotifier(configured(), smtp_factory=FakeSMTP)

    assert asyncio.run(notifier.send_portfolio_alert(stock, "LOSS_ALERT")) is True

    html = FakeSMTP.instances[0].sent[0].get_payload()[0].get_payload(decode=True).decode("utf-8")
    assert "LOSS_ALERT" in html
    assert "Loss: -$90.00 (-12.00%)" in html
