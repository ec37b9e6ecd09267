"""Domain models."""

from .models import (
    ActionItem,
    FinancialInfo,
    Holding,
    HoldingSummary,
    Indicators,
    MarketMover,
    MarketOverview,
    PortfolioSummary,
    PricePoint,
    Quote,
    RebalancingSuggestion,
    Recommendation,
    Risk,
    ScoreBreakdown,
    Signal,
    normalize_symbol,
    utc_now_iso,
)

__all__ = [
    "ActionItem",
    "FinancialInfo",
    "Holding",
    "HoldingSummary",
    "Indicators",
    "MarketMover",
    "MarketOverview",
    "PortfolioSummary",
    "PricePoint",
    "Quote",
    "RebalancingSuggestion",
    "Recommendation",
    "Risk",
    "ScoreBreakdown",
    "Signal",
    "normalize_symbol",
    "utc_now_iso",
]
