"""SMTP mail gateway for alerts and reports."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Mapping, Optional

from ..config import Config
from ..domain.models import HoldingSummary, Indicators, MarketOverview, Quote
from . import templates

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Sends HTML emails over SMTP with STARTTLS.

    Every send method returns True on success and False on any failure,
    including missing credentials or recipient; nothing is raised.
    """

    def __init__(self, config: Config, smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        self.config = config
        self.smtp_factory = smtp_factory

    def _build_message(self, recipient: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.email_user
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        with self.smtp_factory(self.config.smtp_host, self.config.smtp_port, timeout=self.config.http_timeout) as server:
            server.starttls()
            server.login(self.config.email_user, self.config.email_app_password)
            server.send_message(msg)

    async def send(self, recipient: Optional[str], subject: str, html: str) -> bool:
        recipient = recipient or self.config.notification_email
        if not self.config.mail_configured:
            logger.warning("SMTP credentials not configured - email '%s' not sent", subject)
            return False
        if not recipient:
            logger.warning("No recipient for email '%s'", subject)
            return False

        msg = self._build_message(recipient, subject, html)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email sending failed (%s): %s", subject, e)
            return False

        logger.info("Email sent to %s: %s", recipient, subject)
        return True

    async def send_price_alert(self, quote: Quote, recipient: Optional[str] = None) -> bool:
        return await self.send(recipient, templates.price_alert_subject(quote), templates.price_alert_html(quote))

    async def send_technical_alert(self, indicators: Indicators, recipient: Optional[str] = None) -> bool:
        return await self.send(
            recipient,
            templates.technical_alert_subject(indicators),
            templates.technical_alert_html(indicators),
        )

    async def send_market_overview(self, overview: MarketOverview, recipient: Optional[str] = None) -> bool:
        return await self.send(
            recipient,
            templates.market_overview_subject(overview),
            templates.market_overview_html(overview),
        )

    async def send_portfolio_recommendation(
        self, recommendation: Mapping[str, Any], recipient: Optional[str] = None
    ) -> bool:
        return await self.send(
            recipient,
            "💼 Your Personalized Portfolio Recommendation",
            templates.portfolio_recommendation_html(recommendation),
        )

    async def send_daily_report(self, report, recipient: Optional[str] = None) -> bool:
        return await self.send(
            recipient,
            templates.daily_report_subject(report),
            templates.daily_report_html(report),
        )

    async def send_portfolio_alert(
        self, stock: HoldingSummary, alert_type: str, recipient: Optional[str] = None
    ) -> bool:
        return await self.send(
            recipient,
            templates.portfolio_alert_subject(stock, alert_type),
            templates.portfolio_alert_html(stock, alert_type),
        )
