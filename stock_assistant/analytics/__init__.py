"""Analytics modules for indicators, scoring and portfolio analysis."""

from .indicators import (
    compute_indicators,
    generate_signal,
    moving_average,
    rsi,
    signal_reasoning,
    valuation_signal,
    volume_ratio,
)

__all__ = [
    "compute_indicators",
    "generate_signal",
    "moving_average",
    "rsi",
    "signal_reasoning",
    "valuation_signal",
    "volume_ratio",
]
