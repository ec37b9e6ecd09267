"""Services composing providers and analytics."""

from .stock_tools import StockTools, build_market_overview

__all__ = ["StockTools", "build_market_overview"]
