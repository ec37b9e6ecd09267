"""Domain models for quotes, indicators, scores and portfolio holdings."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_symbol(symbol: str) -> str:
    """Normalize ticker symbol to uppercase."""
    return symbol.strip().upper()


# ============================================================================
# Market data
# ============================================================================

@dataclass(frozen=True)
class Quote:
    """Price snapshot, recreated on every fetch."""
    symbol: str
    name: Optional[str]
    price: Optional[float]
    change: Optional[float] = None
    change_percent: Optional[float] = None
    volume: Optional[float] = None
    market_cap: Optional[float] = None
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    previous_close: Optional[float] = None
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PricePoint:
    """One bar of a historical series."""
    date: str
    open: Optional[float]
    high: Optional[float]
    low: Optional[float]
    close: Optional[float]
    volume: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Signal:
    """Derived buy/sell signal."""
    action: str  # STRONG_BUY | BUY | NEUTRAL | SELL | STRONG_SELL
    strength: int
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Indicators:
    """Technical indicators computed fresh for one symbol."""
    symbol: str
    price: Optional[float]
    ma20: Optional[float]
    ma50: Optional[float]
    rsi: Optional[float]
    volume_ratio: Optional[float]
    signal: Signal
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FinancialInfo:
    """Fundamentals and analyst consensus for one symbol."""
    symbol: str
    current_price: Optional[float] = None
    target_mean_price: Optional[float] = None
    recommendation_mean: Optional[float] = None
    recommendation_key: Optional[str] = None
    number_of_analyst_opinions: Optional[int] = None
    pe_ratio: Optional[float] = None
    forward_pe: Optional[float] = None
    peg_ratio: Optional[float] = None
    price_to_book: Optional[float] = None
    profit_margins: Optional[float] = None
    beta: Optional[float] = None
    sector: Optional[str] = None
    valuation: str = "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "sector": self.sector,
            "financial_data": {
                "current_price": self.current_price,
                "target_mean_price": self.target_mean_price,
                "recommendation_mean": self.recommendation_mean,
                "recommendation_key": self.recommendation_key,
                "number_of_analyst_opinions": self.number_of_analyst_opinions,
            },
            "key_statistics": {
                "pe_ratio": self.pe_ratio,
                "forward_pe": self.forward_pe,
                "peg_ratio": self.peg_ratio,
                "price_to_book": self.price_to_book,
                "profit_margins": self.profit_margins,
                "beta": self.beta,
            },
            "valuation": self.valuation,
        }


@dataclass
class MarketMover:
    symbol: str
    name: Optional[str]
    price: Optional[float]
    change_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MarketOverview:
    market_trend: str
    top_gainers: List[MarketMover]
    top_losers: List[MarketMover]
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# Scores
# ============================================================================

@dataclass
class Recommendation:
    action: str
    emoji: str
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"action": self.action, "emoji": self.emoji}
        if self.color:
            data["color"] = self.color
        return data


@dataclass
class ScoreBreakdown:
    """Five sub-scores in [0, 100] and the weighted verdict."""
    symbol: str
    technical: float
    fundamental: float
    sentiment: float
    momentum: float
    risk: float
    total_score: float
    recommendation: Recommendation
    confidence: str  # HIGH | MEDIUM | LOW

    @property
    def sub_scores(self) -> Dict[str, float]:
        return {
            "technical": self.technical,
            "fundamental": self.fundamental,
            "sentiment": self.sentiment,
            "momentum": self.momentum,
            "risk": self.risk,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "total_score": round(self.total_score, 2),
            "breakdown": self.sub_scores,
            "recommendation": self.recommendation.to_dict(),
            "confidence": self.confidence,
        }


# ============================================================================
# Portfolio
# ============================================================================

@dataclass
class Holding:
    """One portfolio position, unique by symbol."""
    symbol: str
    shares: float
    purchase_price: float
    added_date: str = field(default_factory=utc_now_iso)
    last_updated: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted representation."""
        return {
            "symbol": self.symbol,
            "shares": self.shares,
            "purchasePrice": self.purchase_price,
            "addedDate": self.added_date,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holding":
        added = data.get("addedDate") or utc_now_iso()
        return cls(
            symbol=normalize_symbol(data["symbol"]),
            shares=float(data["shares"]),
            purchase_price=float(data["purchasePrice"]),
            added_date=added,
            last_updated=data.get("lastUpdated") or added,
        )


@dataclass
class HoldingSummary:
    """Live valuation of a holding."""
    symbol: str
    shares: float
    purchase_price: float
    current_price: float
    invested: float
    current_value: float
    profit: float
    profit_percent: float
    change_today: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PortfolioSummary:
    stocks: List[HoldingSummary]
    total_invested: float
    total_current_value: float
    total_profit: float
    total_profit_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RebalancingSuggestion:
    type: str
    message: str
    priority: str  # HIGH | MEDIUM | LOW

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Risk:
    type: str
    message: str
    severity: str
    percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ActionItem:
    priority: str
    action: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
