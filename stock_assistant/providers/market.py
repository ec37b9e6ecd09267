"""Market data provider backed by Yahoo Finance."""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import yfinance as yf

from ..config import Config
from ..domain.models import FinancialInfo, PricePoint, Quote, normalize_symbol
from ..analytics.indicators import valuation_signal

logger = logging.getLogger(__name__)


class MarketDataError(RuntimeError):
    """Upstream market data fetch failed."""


def _num(value: Any) -> Optional[float]:
    """Coerce a provider field to float, treating missing/NaN as absent."""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if pd.isna(result):
        return None
    return result


class MarketDataProvider:
    """
    Async wrapper around yfinance.

    yfinance is blocking, so every call runs in the default executor under a
    semaphore that caps concurrent upstream requests. No retries: a failure is
    wrapped in MarketDataError and propagated to the caller.
    """

    def __init__(
        self,
        config: Config,
        semaphore: Optional[asyncio.Semaphore] = None,
        ticker_factory: Callable[[str], Any] = yf.Ticker,
    ):
        self.config = config
        self.semaphore = semaphore or asyncio.Semaphore(config.max_concurrent_requests)
        self.ticker_factory = ticker_factory

    async def _run(self, fn: Callable[[], Any], description: str) -> Any:
        """Run a blocking call in the executor, wrapping failures."""
        try:
            async with self.semaphore:
                loop = asyncio.get_running_loop()
                return await loop.run_in_executor(None, fn)
        except MarketDataError:
            raise
        except Exception as exc:
            logger.warning("%s failed: %s", description, exc)
            raise MarketDataError(f"Failed to fetch {description}: {exc}") from exc

    async def _info(self, symbol: str, description: str) -> Dict[str, Any]:
        def _load():
            info = self.ticker_factory(symbol).info
            if not info:
                raise ValueError("no data returned")
            return info

        return await self._run(_load, description)

    async def get_quote(self, symbol: str) -> Quote:
        """Fetch a live quote snapshot."""
        symbol = normalize_symbol(symbol)
        info = await self._info(symbol, f"price for {symbol}")

        price = _num(info.get("regularMarketPrice")) or _num(info.get("currentPrice"))
        if price is None:
            raise MarketDataError(f"Failed to fetch price for {symbol}: no market price")

        return Quote(
            symbol=info.get("symbol") or symbol,
            name=info.get("longName") or info.get("shortName"),
            price=price,
            change=_num(info.get("regularMarketChange")),
            change_percent=_num(info.get("regularMarketChangePercent")),
            volume=_num(info.get("regularMarketVolume")),
            market_cap=_num(info.get("marketCap")),
            day_high=_num(info.get("regularMarketDayHigh")),
            day_low=_num(info.get("regularMarketDayLow")),
            previous_close=_num(info.get("regularMarketPreviousClose")),
        )

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """Fetch quotes one after another with a fixed delay in between."""
        quotes = []
        for index, symbol in enumerate(symbols):
            if index and self.config.request_delay_seconds > 0:
                await asyncio.sleep(self.config.request_delay_seconds)
            quotes.append(await self.get_quote(symbol))
        return quotes

    async def get_history(
        self,
        symbol: str,
        period: Optional[str] = None,
        interval: str = "1d",
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[PricePoint]:
        """
        Fetch historical bars, oldest first.

        Either `period` ("1mo", "1y", ...) or `start`/`end` dates select the window.
        """
        symbol = normalize_symbol(symbol)

        def _download() -> pd.DataFrame:
            ticker = self.ticker_factory(symbol)
            if start is not None:
                return ticker.history(
                    start=start.isoformat(),
                    end=(end or date.today() + timedelta(days=1)).isoformat(),
                    interval=interval,
                )
            return ticker.history(period=period or "1mo", interval=interval)

        df = await self._run(_download, f"historical data for {symbol}")

        if df is None or df.empty:
            raise MarketDataError(f"Failed to fetch historical data for {symbol}: no rows returned")

        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)
        df.columns = [str(col).capitalize() for col in df.columns]

        points = []
        for ts, row in df.iterrows():
            points.append(
                PricePoint(
                    date=pd.Timestamp(ts).isoformat(),
                    open=_num(row.get("Open")),
                    high=_num(row.get("High")),
                    low=_num(row.get("Low")),
                    close=_num(row.get("Close")),
                    volume=_num(row.get("Volume")),
                )
            )

        logger.info("yfinance: loaded %d rows for %s", len(points), symbol)
        return points

    async def get_financials(self, symbol: str) -> FinancialInfo:
        """Fetch fundamentals, valuation ratios and analyst consensus."""
        symbol = normalize_symbol(symbol)
        info = await self._info(symbol, f"financial info for {symbol}")

        pe = _num(info.get("trailingPE"))
        peg = _num(info.get("pegRatio"))
        if peg is None:
            peg = _num(info.get("trailingPegRatio"))
        analysts = _num(info.get("numberOfAnalystOpinions"))

        return FinancialInfo(
            symbol=symbol,
            current_price=_num(info.get("currentPrice")) or _num(info.get("regularMarketPrice")),
            target_mean_price=_num(info.get("targetMeanPrice")),
            recommendation_mean=_num(info.get("recommendationMean")),
            recommendation_key=info.get("recommendationKey"),
            number_of_analyst_opinions=int(analysts) if analysts is not None else None,
            pe_ratio=pe,
            forward_pe=_num(info.get("forwardPE")),
            peg_ratio=peg,
            price_to_book=_num(info.get("priceToBook")),
            profit_margins=_num(info.get("profitMargins")),
            beta=_num(info.get("beta")),
            sector=info.get("sector"),
            valuation=valuation_signal(pe, peg),
        )

    async def get_sector(self, symbol: str) -> str:
        symbol = normalize_symbol(symbol)
        info = await self._info(symbol, f"sector for {symbol}")
        return info.get("sector") or "Unknown"
