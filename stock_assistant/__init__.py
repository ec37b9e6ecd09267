"""NASDAQ-100 stock assistant: quotes, scores, portfolio tracking and email alerts."""

__version__ = "1.0.0"
