"""Pure indicator computation functions (no I/O)."""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..domain.models import Indicators, PricePoint, Signal

logger = logging.getLogger(__name__)


def _as_series(values: Sequence[float]) -> pd.Series:
    return pd.Series(list(values), dtype="float64").dropna().reset_index(drop=True)


def moving_average(closes: Sequence[float], period: int) -> Optional[float]:
    """
    Calculate Simple Moving Average over the last `period` closes.

    Args:
        closes: Closing prices, oldest first
        period: Window length

    Returns:
        SMA value or None if insufficient data
    """
    prices = _as_series(closes)
    if period <= 0 or len(prices) < period:
        return None

    return float(prices.iloc[-period:].mean())


def rsi(closes: Sequence[float], period: int = 14) -> Optional[float]:
    """
    Calculate RSI (Relative Strength Index) from the last `period` deltas.

    Gains and losses are averaged with a simple mean. When the average loss
    is zero the RSI is 100.

    Returns:
        RSI value (0-100) or None if insufficient data
    """
    prices = _as_series(closes)
    if period <= 0 or len(prices) < period + 1:
        return None

    delta = prices.diff().iloc[-period:]
    avg_gain = float(delta.clip(lower=0).sum()) / period
    avg_loss = float((-delta.clip(upper=0)).sum()) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def volume_ratio(volumes: Sequence[float], window: int = 20) -> Optional[float]:
    """Latest volume relative to the mean of the last `window` volumes."""
    series = _as_series(volumes)
    if series.empty:
        return None

    avg_volume = float(series.iloc[-window:].sum()) / window
    if avg_volume == 0:
        return None

    return float(series.iloc[-1]) / avg_volume


def signal_reasoning(
    price: Optional[float],
    ma20: Optional[float],
    ma50: Optional[float],
    rsi_value: Optional[float],
) -> str:
    """Human-readable summary of which signal conditions fired."""
    reasons = []

    if ma20 is not None and price is not None:
        if price > ma20:
            reasons.append("Price above 20-day MA")
        elif price < ma20:
            reasons.append("Price below 20-day MA")
    if ma20 is not None and ma50 is not None:
        if ma20 > ma50:
            reasons.append("Golden cross pattern")
        elif ma20 < ma50:
            reasons.append("Death cross pattern")
    if rsi_value is not None:
        if rsi_value < 30:
            reasons.append("RSI indicates oversold")
        elif rsi_value > 70:
            reasons.append("RSI indicates overbought")

    return ", ".join(reasons) or "Neutral market conditions"


def generate_signal(
    price: Optional[float],
    ma20: Optional[float],
    ma50: Optional[float],
    rsi_value: Optional[float],
) -> Signal:
    """
    Derive a buy/sell signal from price, moving averages and RSI.

    Trend alignment (price > MA20 > MA50 or the reverse) moves the strength
    accumulator by 2; an RSI extreme escalates the action and moves it by 1.
    """
    action = "NEUTRAL"
    strength = 0

    if ma20 is not None and ma50 is not None and price is not None:
        if price > ma20 > ma50:
            action = "BUY"
            strength += 2
        elif price < ma20 < ma50:
            action = "SELL"
            strength -= 2

    if rsi_value is not None:
        if rsi_value < 30:
            action = "STRONG_BUY" if action == "BUY" else "BUY"
            strength += 1
        elif rsi_value > 70:
            action = "STRONG_SELL" if action == "SELL" else "SELL"
            strength -= 1

    return Signal(
        action=action,
        strength=abs(strength),
        reasoning=signal_reasoning(price, ma20, ma50, rsi_value),
    )


def valuation_signal(pe: Optional[float], peg: Optional[float]) -> str:
    """Coarse valuation label from trailing P/E and PEG."""
    if not pe:
        return "Unknown"

    if pe < 15:
        return "Undervalued"
    if pe > 30:
        return "Overvalued"
    if peg and peg < 1:
        return "Good value"
    if peg and peg > 2:
        return "Expensive"

    return "Fair value"


def compute_indicators(symbol: str, history: Sequence[PricePoint]) -> Indicators:
    """
    Calculate all technical indicators from a historical series.

    Args:
        symbol: Ticker symbol
        history: Bars, oldest first

    Returns:
        Indicators with MA20, MA50, RSI14, volume ratio and signal
    """
    closes = [p.close for p in history if p.close is not None]
    volumes = [p.volume for p in history if p.volume is not None]

    price = closes[-1] if closes else None
    ma20 = moving_average(closes, 20)
    ma50 = moving_average(closes, 50)
    rsi14 = rsi(closes, 14)

    logger.debug(
        "Indicators for %s: price=%s ma20=%s ma50=%s rsi=%s",
        symbol, price, ma20, ma50, rsi14,
    )

    return Indicators(
        symbol=symbol,
        price=price,
        ma20=ma20,
        ma50=ma50,
        rsi=rsi14,
        volume_ratio=volume_ratio(volumes, 20),
        signal=generate_signal(price, ma20, ma50, rsi14),
    )
