"""Pure rule evaluation functions for alert logic."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.models import HoldingSummary, Indicators, ScoreBreakdown

logger = logging.getLogger(__name__)

STRONG_SIGNALS = ("STRONG_BUY", "STRONG_SELL")


@dataclass
class RuleResult:
    """Result of a rule evaluation."""
    triggered: bool
    current_value: Optional[float] = None
    details: str = ""


def eval_day_change(stock: HoldingSummary, threshold_percent: float) -> RuleResult:
    """
    Check if today's move in either direction reaches the threshold.

    Args:
        stock: Live holding valuation
        threshold_percent: e.g. 5.0 for 5%

    Returns:
        RuleResult with triggered=True if |change today| >= threshold
    """
    change = stock.change_today or 0.0
    return RuleResult(
        triggered=abs(change) >= threshold_percent,
        current_value=change,
        details=f"{stock.symbol} changed {change:+.2f}% today (threshold: ±{threshold_percent}%)",
    )


def eval_profit_target(stock: HoldingSummary, threshold_percent: float) -> RuleResult:
    return RuleResult(
        triggered=stock.profit_percent >= threshold_percent,
        current_value=stock.profit_percent,
        details=f"{stock.symbol} reached {stock.profit_percent:.2f}% profit (target: {threshold_percent}%)",
    )


def eval_loss_limit(stock: HoldingSummary, threshold_percent: float) -> RuleResult:
    """`threshold_percent` is negative, e.g. -5.0."""
    return RuleResult(
        triggered=stock.profit_percent <= threshold_percent,
        current_value=stock.profit_percent,
        details=f"{stock.symbol} is down {stock.profit_percent:.2f}% (limit: {threshold_percent}%)",
    )


def eval_strong_signal(indicators: Indicators) -> RuleResult:
    action = indicators.signal.action
    return RuleResult(
        triggered=action in STRONG_SIGNALS,
        current_value=float(indicators.signal.strength),
        details=f"{indicators.symbol} technical signal: {action}",
    )


def eval_reference_move(
    current_price: Optional[float],
    reference_price: Optional[float],
    threshold_percent: float,
) -> RuleResult:
    """
    Check the move from a reference price.

    Missing or non-positive prices never trigger.
    """
    if not current_price or not reference_price or reference_price <= 0:
        return RuleResult(triggered=False, details="No reference price")

    move = (current_price - reference_price) / reference_price * 100
    return RuleResult(
        triggered=abs(move) >= threshold_percent,
        current_value=move,
        details=f"Moved {move:+.2f}% from ${reference_price:.2f} (threshold: ±{threshold_percent}%)",
    )


def eval_ai_signal(score: ScoreBreakdown, min_score: float = 75.0) -> RuleResult:
    triggered = score.total_score >= min_score and score.recommendation.action == "STRONG_BUY"
    return RuleResult(
        triggered=triggered,
        current_value=score.total_score,
        details=f"Strong Buy Signal for {score.symbol}! AI Score: {score.total_score:.1f}",
    )


def eval_price_breakout(current_price: Optional[float], breakout_price: Optional[float]) -> RuleResult:
    if not breakout_price or current_price is None:
        return RuleResult(triggered=False)

    return RuleResult(
        triggered=current_price > breakout_price,
        current_value=current_price,
        details=f"broke resistance at ${breakout_price}",
    )


def eval_volume_spike(volume_ratio: Optional[float], factor: float = 2.0) -> RuleResult:
    """Last volume against its 20-day average."""
    if volume_ratio is None:
        return RuleResult(triggered=False, details="No volume data")

    return RuleResult(
        triggered=volume_ratio > factor,
        current_value=volume_ratio,
        details=f"Volume {volume_ratio:.1f}x the 20-day average",
    )
