"""External data providers."""

from .alphavantage import NewsSentimentProvider
from .market import MarketDataError, MarketDataProvider

__all__ = ["MarketDataError", "MarketDataProvider", "NewsSentimentProvider"]
