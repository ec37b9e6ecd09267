"""Alpha Vantage news sentiment (optional auxiliary lookup)."""

import logging
from typing import Optional

import httpx

from ..config import Config

logger = logging.getLogger(__name__)

ALPHAVANTAGE_URL = "https://www.alphavantage.co/query"


class NewsSentimentProvider:
    """
    Average news sentiment for a ticker from Alpha Vantage NEWS_SENTIMENT.

    Only active when ALPHAVANTAGE_API_KEY is configured. The lookup is
    auxiliary: any failure is logged and reported as "no sentiment".
    """

    def __init__(self, config: Config, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.config.alphavantage_api_key)

    async def get_sentiment(self, symbol: str) -> Optional[float]:
        """
        Mean ticker sentiment score in [-1, 1], or None when unavailable.
        """
        if not self.enabled:
            return None

        params = {
            "function": "NEWS_SENTIMENT",
            "tickers": symbol,
            "limit": 50,
            "apikey": self.config.alphavantage_api_key,
        }

        try:
            if self.http_client is not None:
                response = await self.http_client.get(
                    ALPHAVANTAGE_URL, params=params, timeout=self.config.http_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                    response = await client.get(ALPHAVANTAGE_URL, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Alpha Vantage sentiment lookup failed for %s: %s", symbol, exc)
            return None

        return parse_ticker_sentiment(payload, symbol)


def parse_ticker_sentiment(payload: dict, symbol: str) -> Optional[float]:
    """Average `ticker_sentiment_score` for `symbol` across the feed."""
    if not isinstance(payload, dict):
        return None

    if "feed" not in payload:
        # Rate limit and error responses carry a "Note"/"Information" field instead
        note = payload.get("Note") or payload.get("Information") or payload.get("Error Message")
        if note:
            logger.info("Alpha Vantage returned no feed for %s: %s", symbol, note)
        return None

    scores = []
    for article in payload.get("feed") or []:
        for entry in article.get("ticker_sentiment") or []:
            if str(entry.get("ticker", "")).upper() != symbol.upper():
                continue
            try:
                scores.append(float(entry.get("ticker_sentiment_score")))
            except (TypeError, ValueError):
                continue

    if not scores:
        return None

    return sum(scores) / len(scores)
