"""Persistent storage."""

from .portfolio_store import PortfolioStore

__all__ = ["PortfolioStore"]
