"""File-based portfolio store: one JSON array of holdings."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..domain.models import Holding, HoldingSummary, PortfolioSummary, normalize_symbol, utc_now_iso

logger = logging.getLogger(__name__)


class PortfolioStore:
    """
    In-memory list of holdings backed by a JSON file.

    The file is the source of truth: it is read on load and rewritten after
    every mutation. Writes go to a temporary file that is renamed over the
    original. There is no locking; the last writer wins.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.holdings: List[Holding] = []

    def load(self) -> List[Holding]:
        """Read the file; start empty if it is missing or unreadable."""
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
            self.holdings = [Holding.from_dict(item) for item in raw]
            logger.info("Loaded %d stocks from portfolio", len(self.holdings))
        except FileNotFoundError:
            self.holdings = []
            logger.info("Starting with empty portfolio")
        except (OSError, ValueError, KeyError, TypeError) as exc:
            self.holdings = []
            logger.warning("Could not read portfolio file %s, starting empty: %s", self.path, exc)
        return self.holdings

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump([h.to_dict() for h in self.holdings], fh, ensure_ascii=True, indent=2)
        tmp_path.replace(self.path)
        logger.debug("Portfolio saved to %s", self.path)

    def find(self, symbol: str) -> Optional[Holding]:
        symbol = normalize_symbol(symbol)
        return next((h for h in self.holdings if h.symbol == symbol), None)

    def add_stock(self, symbol: str, shares: float, purchase_price: float) -> List[Holding]:
        """Add shares, merging into an existing holding at weighted-average cost."""
        symbol = normalize_symbol(symbol)
        shares = float(shares)
        purchase_price = float(purchase_price)
        if not symbol:
            raise ValueError("symbol must not be empty")
        if shares <= 0:
            raise ValueError("shares must be > 0")
        if purchase_price <= 0:
            raise ValueError("purchase price must be > 0")

        existing = self.find(symbol)
        if existing:
            total_shares = existing.shares + shares
            total_cost = existing.shares * existing.purchase_price + shares * purchase_price
            existing.shares = total_shares
            existing.purchase_price = total_cost / total_shares
            existing.last_updated = utc_now_iso()
        else:
            self.holdings.append(Holding(symbol=symbol, shares=shares, purchase_price=purchase_price))

        self.save()
        return self.holdings

    def remove_stock(self, symbol: str) -> List[Holding]:
        """Drop a symbol; removing an absent symbol changes nothing."""
        symbol = normalize_symbol(symbol)
        self.holdings = [h for h in self.holdings if h.symbol != symbol]
        self.save()
        return self.holdings

    def get_portfolio(self) -> List[Holding]:
        return list(self.holdings)

    def clear(self) -> dict:
        self.holdings = []
        self.save()
        return {"success": True, "message": "Portfolio cleared"}

    async def get_summary(self, stock_tools) -> PortfolioSummary:
        """
        Value every holding at a fresh quote.

        Holdings whose quote cannot be fetched are logged and left out.
        """
        stocks: List[HoldingSummary] = []
        total_invested = 0.0
        total_current = 0.0

        for holding in list(self.holdings):
            try:
                quote = await stock_tools.get_stock_price(holding.symbol)
            except Exception as exc:
                logger.error("Error getting data for %s: %s", holding.symbol, exc)
                continue

            invested = holding.shares * holding.purchase_price
            current_value = holding.shares * quote.price
            profit = current_value - invested
            profit_percent = (profit / invested) * 100 if invested else 0.0

            total_invested += invested
            total_current += current_value

            stocks.append(
                HoldingSummary(
                    symbol=holding.symbol,
                    shares=holding.shares,
                    purchase_price=holding.purchase_price,
                    current_price=quote.price,
                    invested=invested,
                    current_value=current_value,
                    profit=profit,
                    profit_percent=profit_percent,
                    change_today=quote.change_percent or 0.0,
                )
            )

        total_profit = total_current - total_invested
        return PortfolioSummary(
            stocks=stocks,
            total_invested=total_invested,
            total_current_value=total_current,
            total_profit=total_profit,
            total_profit_percent=(total_profit / total_invested) * 100 if total_invested else 0.0,
        )
