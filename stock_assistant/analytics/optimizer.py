"""Budget allocation across sector buckets and market-wide score insights."""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import NASDAQ_100_SYMBOLS
from ..domain.models import Recommendation, ScoreBreakdown, normalize_symbol, utc_now_iso

logger = logging.getLogger(__name__)

MIN_SCORE = 60.0
PICKS_PER_SECTOR = 3

INSIGHT_UNIVERSE_SIZE = 20
INSIGHT_MIN_SCORE = 70.0
INSIGHT_TOP_N = 5

ALLOCATIONS: Dict[str, Dict[str, float]] = {
    "conservative": {"Technology": 0.20, "Healthcare": 0.30, "Consumer": 0.30, "Financial": 0.20},
    "moderate": {"Technology": 0.35, "Healthcare": 0.25, "Consumer": 0.25, "Financial": 0.15},
    "aggressive": {"Technology": 0.50, "Healthcare": 0.20, "Consumer": 0.20, "Financial": 0.10},
}
RISK_TOLERANCES = list(ALLOCATIONS)

# Reported sector -> allocation bucket
SECTOR_BUCKETS: Dict[str, str] = {
    "Technology": "Technology",
    "Communication Services": "Technology",
    "Healthcare": "Healthcare",
    "Consumer Cyclical": "Consumer",
    "Consumer Defensive": "Consumer",
    "Financial Services": "Financial",
}


def get_allocation(risk_tolerance: Optional[str]) -> Dict[str, float]:
    """Bucket weights for a risk profile; unknown profiles get the moderate mix."""
    return dict(ALLOCATIONS.get((risk_tolerance or "").lower(), ALLOCATIONS["moderate"]))


def sector_bucket(sector: Optional[str]) -> Optional[str]:
    return SECTOR_BUCKETS.get(sector or "")


@dataclass
class Candidate:
    symbol: str
    price: float
    sector: Optional[str]
    score: ScoreBreakdown
    target_price: Optional[float] = None

    @property
    def bucket(self) -> Optional[str]:
        return sector_bucket(self.sector)


@dataclass
class RecommendedStock:
    symbol: str
    sector: str
    shares: int
    price: float
    value: float
    ai_score: float
    recommendation: Recommendation
    upside_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["recommendation"] = self.recommendation.to_dict()
        return data


@dataclass
class PortfolioRecommendation:
    budget: float
    risk_tolerance: str
    allocation: Dict[str, float]
    stocks: List[RecommendedStock] = field(default_factory=list)
    total_value: float = 0.0
    cash_remaining: float = 0.0
    expected_return: float = 0.0
    risk_score: float = 0.0
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Also the mapping the recommendation email is rendered from."""
        return {
            "budget": self.budget,
            "risk_tolerance": self.risk_tolerance,
            "allocation": self.allocation,
            "stocks": [s.to_dict() for s in self.stocks],
            "total_value": round(self.total_value, 2),
            "cash_remaining": round(self.cash_remaining, 2),
            "expected_return": round(self.expected_return, 2),
            "risk_score": round(self.risk_score, 1),
            "timestamp": self.timestamp,
        }


@dataclass
class InsightPick:
    symbol: str
    score: float
    recommendation: Recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "score": round(self.score, 2),
            "recommendation": self.recommendation.to_dict(),
        }


@dataclass
class MarketInsights:
    top_recommendations: List[InsightPick]
    market_sentiment: str
    average_score: Optional[float]
    sector_rotation: Dict[str, float]
    scored: int
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "top_recommendations": [p.to_dict() for p in self.top_recommendations],
            "market_sentiment": self.market_sentiment,
            "average_score": round(self.average_score, 2) if self.average_score is not None else None,
            "sector_rotation": self.sector_rotation,
            "scored": self.scored,
            "timestamp": self.timestamp,
        }


def market_sentiment_for(average_score: Optional[float]) -> str:
    if average_score is None:
        return "Unknown"
    if average_score >= 60:
        return "Bullish"
    if average_score <= 40:
        return "Bearish"
    return "Neutral"


def sector_rotation(candidates: Sequence[Candidate]) -> Dict[str, float]:
    """Average score per reported sector, strongest first."""
    totals: Dict[str, List[float]] = {}
    for c in candidates:
        totals.setdefault(c.sector or "Unknown", []).append(c.score.total_score)
    averages = {sector: round(sum(s) / len(s), 2) for sector, s in totals.items()}
    return dict(sorted(averages.items(), key=lambda item: item[1], reverse=True))


def upside_percent(price: float, target: Optional[float]) -> Optional[float]:
    if not target or not price:
        return None
    return (target / price - 1) * 100


def allocate(
    candidates: Sequence[Candidate], budget: float, risk_tolerance: Optional[str] = "moderate"
) -> PortfolioRecommendation:
    """
    Split ``budget`` across sector buckets by risk profile.

    Each bucket takes its best (up to three) candidates scoring at least 60
    and divides its amount evenly between them in whole shares. Picks that
    cannot afford a single share are dropped; unspent money stays as cash.
    Expected return is the value-weighted analyst target upside, risk score
    the value-weighted inverse of the safety sub-score on a 0-10 scale.
    """
    if budget <= 0:
        raise ValueError("Budget must be positive")

    profile = (risk_tolerance or "moderate").lower()
    if profile not in ALLOCATIONS:
        logger.warning("Unknown risk tolerance %r, using moderate", risk_tolerance)
        profile = "moderate"
    allocation = get_allocation(profile)

    result = PortfolioRecommendation(budget=budget, risk_tolerance=profile, allocation=allocation)

    for bucket, weight in allocation.items():
        eligible = [c for c in candidates if c.bucket == bucket and c.score.total_score >= MIN_SCORE and c.price > 0]
        picks = sorted(eligible, key=lambda c: c.score.total_score, reverse=True)[:PICKS_PER_SECTOR]
        if not picks:
            logger.info("No %s candidates scored %.0f or better", bucket, MIN_SCORE)
            continue

        per_stock = budget * weight / len(picks)
        for c in picks:
            shares = math.floor(per_stock / c.price)
            if shares <= 0:
                continue
            result.stocks.append(RecommendedStock(
                symbol=c.symbol,
                sector=bucket,
                shares=shares,
                price=c.price,
                value=shares * c.price,
                ai_score=round(c.score.total_score, 2),
                recommendation=c.score.recommendation,
                upside_percent=upside_percent(c.price, c.target_price),
            ))

    result.total_value = sum(s.value for s in result.stocks)
    result.cash_remaining = budget - result.total_value

    if result.total_value > 0:
        by_symbol = {c.symbol: c for c in candidates}
        with_target = [s for s in result.stocks if s.upside_percent is not None]
        target_value = sum(s.value for s in with_target)
        if target_value > 0:
            result.expected_return = sum(s.upside_percent * s.value for s in with_target) / target_value
        result.risk_score = sum(
            (100 - by_symbol[s.symbol].score.risk) / 10 * s.value for s in result.stocks
        ) / result.total_value

    return result


class PortfolioOptimizer:
    """Scores a symbol universe and turns it into allocations and insights."""

    def __init__(self, stock_tools, ai_engine, universe: Optional[Sequence[str]] = None):
        self.stock_tools = stock_tools
        self.ai_engine = ai_engine
        self.universe = list(universe or NASDAQ_100_SYMBOLS)

    async def _candidate(self, symbol: str) -> Optional[Candidate]:
        symbol = normalize_symbol(symbol)
        try:
            financial = await self.stock_tools.get_financial_info(symbol)
            price = financial.current_price
            if not price:
                price = (await self.stock_tools.get_stock_price(symbol)).price
            score = await self.ai_engine.score(symbol)
        except Exception as exc:
            logger.error("Skipping %s: %s", symbol, exc)
            return None

        if not price:
            logger.warning("Skipping %s: no price", symbol)
            return None

        return Candidate(
            symbol=symbol,
            price=float(price),
            sector=financial.sector,
            score=score,
            target_price=financial.target_mean_price,
        )

    async def _candidates(self, symbols: Sequence[str]) -> List[Candidate]:
        candidates = []
        for symbol in symbols:
            candidate = await self._candidate(symbol)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    async def recommend_portfolio(self, budget: float, risk_tolerance: Optional[str] = "moderate") -> PortfolioRecommendation:
        if budget <= 0:
            raise ValueError("Budget must be positive")
        logger.info("Building %s portfolio for $%.2f", risk_tolerance or "moderate", budget)
        candidates = await self._candidates(self.universe)
        return allocate(candidates, budget, risk_tolerance)

    async def get_market_insights(self) -> MarketInsights:
        """Score the first twenty symbols; five best at 70+ are recommended."""
        candidates = await self._candidates(self.universe[:INSIGHT_UNIVERSE_SIZE])

        strong = [c for c in candidates if c.score.total_score >= INSIGHT_MIN_SCORE]
        strong.sort(key=lambda c: c.score.total_score, reverse=True)

        average = (
            sum(c.score.total_score for c in candidates) / len(candidates) if candidates else None
        )
        return MarketInsights(
            top_recommendations=[
                InsightPick(c.symbol, c.score.total_score, c.score.recommendation)
                for c in strong[:INSIGHT_TOP_N]
            ],
            market_sentiment=market_sentiment_for(average),
            average_score=average,
            sector_rotation=sector_rotation(candidates),
            scored=len(candidates),
        )
