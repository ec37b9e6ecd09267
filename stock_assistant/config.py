"""Configuration management for the stock assistant."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Mail account (Gmail app password by default)
    email_user: Optional[str] = None
    email_app_password: Optional[str] = None
    notification_email: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587

    # Portfolio store
    portfolio_file: str = "my-portfolio.json"

    # Auxiliary indicator lookups (optional)
    alphavantage_api_key: Optional[str] = None
    finnhub_api_key: Optional[str] = None

    # Network settings
    http_timeout: int = 30
    max_concurrent_requests: int = 5
    request_delay_seconds: float = 0.0

    # Monitor defaults
    monitor_interval_minutes: float = 5.0
    price_alert_threshold: float = 5.0
    profit_alert_threshold: float = 10.0
    loss_alert_threshold: float = -5.0
    daily_report_hour: int = 9
    daily_report_minute: int = 0

    log_level: str = "INFO"

    @property
    def mail_configured(self) -> bool:
        return bool(self.email_user and self.email_app_password)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            email_user=os.getenv("EMAIL_USER", "").strip() or None,
            email_app_password=os.getenv("EMAIL_APP_PASSWORD", "").strip() or None,
            notification_email=os.getenv("NOTIFICATION_EMAIL", "").strip() or None,
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com").strip() or "smtp.gmail.com",
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            portfolio_file=os.getenv("PORTFOLIO_FILE", "my-portfolio.json").strip() or "my-portfolio.json",
            alphavantage_api_key=os.getenv("ALPHAVANTAGE_API_KEY", "").strip() or None,
            finnhub_api_key=os.getenv("FINNHUB_API_KEY", "").strip() or None,
            http_timeout=int(os.getenv("HTTP_TIMEOUT", "30")),
            max_concurrent_requests=int(os.getenv("MAX_CONCURRENT_REQUESTS", "5")),
            request_delay_seconds=float(os.getenv("REQUEST_DELAY_SECONDS", "0")),
            monitor_interval_minutes=float(os.getenv("MONITOR_INTERVAL_MINUTES", "5")),
            price_alert_threshold=float(os.getenv("MONITOR_PRICE_THRESHOLD", "5")),
            profit_alert_threshold=float(os.getenv("MONITOR_PROFIT_THRESHOLD", "10")),
            loss_alert_threshold=float(os.getenv("MONITOR_LOSS_THRESHOLD", "-5")),
            daily_report_hour=int(os.getenv("DAILY_REPORT_HOUR", "9")),
            daily_report_minute=int(os.getenv("DAILY_REPORT_MINUTE", "0")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


# NASDAQ-100 constituents used for market overview and top picks
NASDAQ_100_SYMBOLS = [
    "AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOGL", "GOOG", "TSLA",
    "AVGO", "PEP", "COST", "ASML", "AZN", "CSCO", "TMUS", "ADBE",
    "NFLX", "QCOM", "INTC", "AMD", "INTU", "AMGN", "ISRG", "AMAT",
]

VALID_PERIODS = ["1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y"]
