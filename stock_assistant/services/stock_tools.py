"""Stock data service - composes the market provider with indicator analytics."""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from ..analytics.indicators import compute_indicators
from ..config import NASDAQ_100_SYMBOLS, VALID_PERIODS
from ..domain.models import (
    FinancialInfo,
    Indicators,
    MarketMover,
    MarketOverview,
    Quote,
    normalize_symbol,
)
from ..providers.market import MarketDataError, MarketDataProvider

logger = logging.getLogger(__name__)


class StockTools:
    """Quote, history, indicator and fundamentals lookups used by every tool."""

    def __init__(self, market_provider: MarketDataProvider):
        self.market_provider = market_provider

    async def get_stock_price(self, symbol: str) -> Quote:
        return await self.market_provider.get_quote(symbol)

    async def get_multiple_stock_prices(self, symbols: List[str]) -> List[Quote]:
        try:
            return await self.market_provider.get_quotes([normalize_symbol(s) for s in symbols])
        except MarketDataError as exc:
            raise MarketDataError(f"Failed to fetch multiple stocks: {exc}") from exc

    async def get_historical_data(self, symbol: str, period: Optional[str] = "1mo") -> Dict:
        """
        Get historical bars for a stock.

        Unknown periods fall back to "1mo". Intraday (5m) bars are used for "1d".
        """
        symbol = normalize_symbol(symbol)
        if period not in VALID_PERIODS:
            period = "1mo"
        interval = "5m" if period == "1d" else "1d"

        points = await self.market_provider.get_history(symbol, period=period, interval=interval)
        return {
            "symbol": symbol,
            "period": period,
            "data": [p.to_dict() for p in points],
        }

    async def get_technical_indicators(self, symbol: str) -> Indicators:
        """Indicators over the last three months of daily bars."""
        symbol = normalize_symbol(symbol)
        end = date.today()
        start = end - timedelta(days=90)
        try:
            history = await self.market_provider.get_history(symbol, start=start, end=end, interval="1d")
        except MarketDataError as exc:
            raise MarketDataError(f"Failed to calculate indicators for {symbol}: {exc}") from exc
        return compute_indicators(symbol, history)

    async def get_financial_info(self, symbol: str) -> FinancialInfo:
        return await self.market_provider.get_financials(symbol)

    async def get_sector(self, symbol: str) -> str:
        return await self.market_provider.get_sector(symbol)

    async def get_nasdaq100_overview(self) -> MarketOverview:
        """
        Market overview over the ten largest NASDAQ-100 names.

        Positive movers are gainers (sorted descending), the rest losers
        (sorted ascending); five of each are reported.
        """
        try:
            quotes = await self.market_provider.get_quotes(NASDAQ_100_SYMBOLS[:10])
        except MarketDataError as exc:
            raise MarketDataError(f"Failed to fetch NASDAQ 100 overview: {exc}") from exc

        return build_market_overview(quotes)


def build_market_overview(quotes: List[Quote]) -> MarketOverview:
    gainers: List[MarketMover] = []
    losers: List[MarketMover] = []

    for quote in quotes:
        mover = MarketMover(
            symbol=quote.symbol,
            name=quote.name,
            price=quote.price,
            change_percent=quote.change_percent or 0.0,
        )
        if mover.change_percent > 0:
            gainers.append(mover)
        else:
            losers.append(mover)

    gainers.sort(key=lambda m: m.change_percent, reverse=True)
    losers.sort(key=lambda m: m.change_percent)

    return MarketOverview(
        market_trend="Bullish" if len(gainers) > len(losers) else "Bearish",
        top_gainers=gainers[:5],
        top_losers=losers[:5],
    )
