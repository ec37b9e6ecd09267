"""Replay the technical score over past daily closes and simulate trades."""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..domain.models import PricePoint, normalize_symbol
from .indicators import generate_signal, moving_average, rsi
from .scoring import BASELINE, clamp_score

logger = logging.getLogger(__name__)

INITIAL_CAPITAL = 10000.0
WARMUP_BARS = 20
BUY_SCORE = 70.0
SELL_SCORE = 40.0


@dataclass
class Trade:
    type: str  # BUY | SELL
    date: str
    price: float
    shares: int
    profit: Optional[float] = None
    return_pct: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.type == "BUY":
            data.pop("profit")
            data.pop("return_pct")
        return data


@dataclass
class BacktestResult:
    symbol: str
    period: str
    trades: List[Trade] = field(default_factory=list)
    final_capital: float = INITIAL_CAPITAL
    total_return: float = 0.0
    win_rate: float = 0.0
    sharpe_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "period": self.period,
            "trades": [t.to_dict() for t in self.trades],
            "final_capital": round(self.final_capital, 2),
            "total_return": round(self.total_return, 2),
            "win_rate": round(self.win_rate, 2),
            "sharpe_ratio": round(self.sharpe_ratio, 4),
        }


def historical_score(closes: Sequence[float]) -> float:
    """
    Technical score from a price prefix alone.

    Same RSI and MA-cross points as the live technical sub-score (volume is
    not replayed), plus 10 points in the direction of the derived signal.
    """
    score = BASELINE
    price = closes[-1] if closes else None
    ma20 = moving_average(closes, 20)
    ma50 = moving_average(closes, 50)
    rsi14 = rsi(closes, 14)

    if rsi14 is not None:
        if rsi14 < 30:
            score += 20
        elif rsi14 > 70:
            score -= 20

    if ma20 is not None and ma50 is not None and ma20 > ma50:
        score += 15

    action = generate_signal(price, ma20, ma50, rsi14).action
    if action.endswith("BUY"):
        score += 10
    elif action.endswith("SELL"):
        score -= 10

    return clamp_score(score)


def win_rate(trades: List[Trade]) -> float:
    sells = [t for t in trades if t.type == "SELL"]
    if not sells:
        return 0.0
    return sum(1 for t in sells if (t.profit or 0) > 0) / len(sells) * 100


def sharpe_ratio(trades: List[Trade]) -> float:
    """Mean over sample deviation of per-trade returns; 0 with fewer than two trades."""
    returns = [t.return_pct for t in trades if t.type == "SELL" and t.return_pct is not None]
    if len(returns) < 2:
        return 0.0
    std = float(np.std(returns, ddof=1))
    if std == 0 or math.isnan(std):
        return 0.0
    return float(np.mean(returns)) / std


def run_backtest(symbol: str, history: Sequence[PricePoint], period: str = "1y") -> BacktestResult:
    """Long-only, all-in simulation over `history` (oldest first)."""
    bars = [p for p in history if p.close is not None]
    closes = [p.close for p in bars]

    capital = INITIAL_CAPITAL
    trades: List[Trade] = []
    position: Optional[Trade] = None

    for i in range(WARMUP_BARS, len(bars)):
        score = historical_score(closes[:i])
        bar = bars[i]

        if position is None and score >= BUY_SCORE:
            shares = int(capital // bar.close)
            if shares <= 0:
                continue
            position = Trade(type="BUY", date=bar.date, price=bar.close, shares=shares)
            trades.append(position)
        elif position is not None and score <= SELL_SCORE:
            profit = (bar.close - position.price) * position.shares
            capital += profit
            trades.append(Trade(
                type="SELL",
                date=bar.date,
                price=bar.close,
                shares=position.shares,
                profit=profit,
                return_pct=(bar.close - position.price) / position.price * 100,
            ))
            position = None

    return BacktestResult(
        symbol=symbol,
        period=period,
        trades=trades,
        final_capital=capital,
        total_return=(capital - INITIAL_CAPITAL) / INITIAL_CAPITAL * 100,
        win_rate=win_rate(trades),
        sharpe_ratio=sharpe_ratio(trades),
    )


class BacktestingEngine:
    def __init__(self, market_provider):
        self.market_provider = market_provider

    async def backtest(self, symbol: str, period: str = "1y") -> BacktestResult:
        symbol = normalize_symbol(symbol)
        history = await self.market_provider.get_history(symbol, period=period, interval="1d")
        result = run_backtest(symbol, history, period)
        logger.info(
            "Backtest %s over %s: %d trades, return %.2f%%",
            symbol, period, len(result.trades), result.total_return,
        )
        return result
