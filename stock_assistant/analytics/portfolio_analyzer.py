"""Daily portfolio analysis: holding scores, sectors, rebalancing and action items."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..domain.models import (
    ActionItem,
    FinancialInfo,
    HoldingSummary,
    Indicators,
    MarketOverview,
    RebalancingSuggestion,
    Recommendation,
    Risk,
    normalize_symbol,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

SECTOR_CONCENTRATION_LIMIT = 50.0
MIN_DIVERSIFIED_HOLDINGS = 5
MAX_ACTION_ITEMS = 5


@dataclass
class HoldingScore:
    """Per-holding score on the analyzer's own point schedule."""
    total_score: int
    recommendation: Recommendation
    breakdown: Dict[str, Any] = field(default_factory=dict)
    indicators: Optional[Indicators] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "recommendation": self.recommendation.to_dict(),
            "breakdown": self.breakdown,
        }


@dataclass
class EnrichedHolding:
    summary: HoldingSummary
    ai_score: Optional[int]
    ai_recommendation: Recommendation
    technical_signal: Optional[str] = None
    rsi: Optional[float] = None
    ma20: Optional[float] = None
    ma50: Optional[float] = None

    @property
    def symbol(self) -> str:
        return self.summary.symbol

    @property
    def profit_percent(self) -> float:
        return self.summary.profit_percent

    @property
    def current_value(self) -> float:
        return self.summary.current_value

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary.to_dict()
        data.update(
            ai_score=self.ai_score,
            ai_recommendation=self.ai_recommendation.to_dict(),
            technical_signal=self.technical_signal,
            rsi=self.rsi,
            ma20=self.ma20,
            ma50=self.ma50,
        )
        return data


@dataclass
class SectorAllocation:
    sector: str
    value: float
    percentage: float
    count: int
    stocks: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PortfolioAnalysis:
    is_empty: bool
    total_invested: float = 0.0
    total_current_value: float = 0.0
    total_profit: float = 0.0
    total_profit_percent: float = 0.0
    stocks: List[EnrichedHolding] = field(default_factory=list)
    sector_analysis: List[SectorAllocation] = field(default_factory=list)
    performance_summary: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_empty": self.is_empty,
            "total_invested": self.total_invested,
            "total_current_value": self.total_current_value,
            "total_profit": self.total_profit,
            "total_profit_percent": self.total_profit_percent,
            "stocks": [s.to_dict() for s in self.stocks],
            "sector_analysis": [s.to_dict() for s in self.sector_analysis],
            "performance_summary": self.performance_summary,
        }


@dataclass
class HoldingRecommendation:
    symbol: str
    action: str
    ai_score: int
    reasoning: str
    urgency: str  # HIGH | MEDIUM | LOW

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RebalancingPlan:
    needed: bool
    suggestions: List[RebalancingSuggestion] = field(default_factory=list)
    risks: List[Risk] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "needed": self.needed,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "risks": [r.to_dict() for r in self.risks],
        }


@dataclass
class TopPick:
    symbol: str
    name: Optional[str]
    price: Optional[float]
    change_percent: float
    ai_score: int
    recommendation: Recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change_percent": self.change_percent,
            "ai_score": self.ai_score,
            "recommendation": self.recommendation.to_dict(),
        }


@dataclass
class DailyReport:
    date: str
    portfolio: PortfolioAnalysis
    recommendations: List[HoldingRecommendation]
    rebalancing: RebalancingPlan
    top_picks: List[TopPick]
    market_overview: Optional[MarketOverview]
    action_items: List[ActionItem]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "portfolio": self.portfolio.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "rebalancing": self.rebalancing.to_dict(),
            "top_picks": [p.to_dict() for p in self.top_picks],
            "market_overview": self.market_overview.to_dict() if self.market_overview else None,
            "action_items": [a.to_dict() for a in self.action_items],
        }


# ============================================================================
# Pure scoring / advisory functions
# ============================================================================

def holding_recommendation(score: float) -> Recommendation:
    if score >= 75:
        return Recommendation("STRONG_BUY", "🚀", "#27ae60")
    if score >= 60:
        return Recommendation("BUY", "📈", "#2ecc71")
    if score >= 40:
        return Recommendation("HOLD", "⏸️", "#95a5a6")
    if score >= 25:
        return Recommendation("SELL", "📉", "#e67e22")
    return Recommendation("STRONG_SELL", "⚠️", "#e74c3c")


def holding_score(indicators: Indicators, financial: FinancialInfo) -> HoldingScore:
    """
    Score a holding from baseline 50.

    Technical signal +-20, RSI zone +-10, MA alignment +-10, P/E +-10,
    forward P/E below trailing +10, price vs MA20 beyond 5% +-10.
    """
    score = 50
    price, ma20, ma50, rsi = indicators.price, indicators.ma20, indicators.ma50, indicators.rsi

    if indicators.signal.action == "BUY":
        score += 20
    elif indicators.signal.action == "SELL":
        score -= 20

    if rsi is not None:
        if rsi < 30:
            score += 10
        elif rsi > 70:
            score -= 10

    if price is not None and ma20 is not None and ma50 is not None:
        if price > ma20 > ma50:
            score += 10
        elif price < ma20 < ma50:
            score -= 10

    pe = financial.pe_ratio
    if pe:
        if pe < 15:
            score += 10
        elif pe > 40:
            score -= 10

    if financial.forward_pe and pe and financial.forward_pe < pe:
        score += 10

    price_vs_ma20 = None
    if price is not None and ma20:
        price_vs_ma20 = (price - ma20) / ma20 * 100
        if price_vs_ma20 > 5:
            score += 10
        elif price_vs_ma20 < -5:
            score -= 10

    score = min(100, max(0, score))

    return HoldingScore(
        total_score=score,
        recommendation=holding_recommendation(score),
        breakdown={
            "technical": indicators.signal.action,
            "rsi": rsi,
            "trend": "Bullish" if price_vs_ma20 is not None and price_vs_ma20 > 0 else "Bearish",
        },
        indicators=indicators,
    )


def recommendation_reasoning(indicators: Indicators) -> str:
    reasons = []

    if indicators.signal.action != "NEUTRAL":
        reasons.append(indicators.signal.reasoning)

    if indicators.rsi is not None:
        if indicators.rsi < 30:
            reasons.append("RSI oversold condition")
        elif indicators.rsi > 70:
            reasons.append("RSI overbought condition")

    price, ma20, ma50 = indicators.price, indicators.ma20, indicators.ma50
    if price is not None and ma20 is not None and ma50 is not None and price > ma20 > ma50:
        reasons.append("Strong uptrend (Golden Cross)")

    return "; ".join(reasons) or "Neutral technical indicators"


def urgency_for(score: float, rsi: Optional[float]) -> str:
    if score >= 80 or score <= 20:
        return "HIGH"
    if rsi is not None and abs(rsi - 50) > 20:
        return "MEDIUM"
    return "LOW"


def check_sector_concentration(sectors: List[SectorAllocation]) -> Optional[SectorAllocation]:
    """Largest sector if it holds more than half of the portfolio value."""
    if not sectors:
        return None
    top = max(sectors, key=lambda s: s.value)
    if top.percentage > SECTOR_CONCENTRATION_LIMIT:
        return top
    return None


def recommend_cash_position(total_profit_percent: float) -> Optional[RebalancingSuggestion]:
    if total_profit_percent > 15:
        return RebalancingSuggestion(
            type="INCREASE_CASH",
            message="Consider taking some profits and increasing cash position (recommended: 15-20%)",
            priority="MEDIUM",
        )
    if total_profit_percent < -10:
        return RebalancingSuggestion(
            type="AVERAGING_DOWN",
            message="Market pullback - consider averaging down on high-conviction stocks",
            priority="LOW",
        )
    return None


def generate_rebalancing_suggestions(analysis: PortfolioAnalysis) -> RebalancingPlan:
    if analysis.is_empty:
        return RebalancingPlan(needed=False)

    suggestions: List[RebalancingSuggestion] = []
    risks: List[Risk] = []

    losers = [s.symbol for s in analysis.stocks if s.profit_percent < -10]
    if losers:
        suggestions.append(RebalancingSuggestion(
            type="REVIEW_LOSSES",
            message=f"{len(losers)} stock(s) down >10%. Consider reviewing: {', '.join(losers)}",
            priority="HIGH",
        ))

    winners = [s.symbol for s in analysis.stocks if s.profit_percent > 20]
    if winners:
        suggestions.append(RebalancingSuggestion(
            type="TAKE_PROFIT",
            message=f"{len(winners)} stock(s) up >20%. Consider taking profits: {', '.join(winners)}",
            priority="MEDIUM",
        ))

    concentrated = check_sector_concentration(analysis.sector_analysis)
    if concentrated:
        risks.append(Risk(
            type="SECTOR_CONCENTRATION",
            message=f"{concentrated.sector} sector represents {concentrated.percentage:.1f}% of portfolio",
            severity="HIGH",
            percentage=concentrated.percentage,
        ))
        suggestions.append(RebalancingSuggestion(
            type="DIVERSIFY",
            message="Consider diversifying into other sectors",
            priority="MEDIUM",
        ))

    if len(analysis.stocks) < MIN_DIVERSIFIED_HOLDINGS:
        suggestions.append(RebalancingSuggestion(
            type="INCREASE_DIVERSIFICATION",
            message="Portfolio has fewer than 5 stocks. Consider adding more positions for diversification",
            priority="LOW",
        ))

    cash = recommend_cash_position(analysis.total_profit_percent)
    if cash:
        suggestions.append(cash)

    return RebalancingPlan(needed=bool(suggestions), suggestions=suggestions, risks=risks)


def performance_summary(stocks: List[EnrichedHolding]) -> Optional[Dict[str, Any]]:
    if not stocks:
        return None

    winners = sum(1 for s in stocks if s.profit_percent > 0)
    losers = sum(1 for s in stocks if s.profit_percent < 0)
    best = max(stocks, key=lambda s: s.profit_percent)
    worst = min(stocks, key=lambda s: s.profit_percent)

    return {
        "winners": winners,
        "losers": losers,
        "win_rate": winners / len(stocks) * 100,
        "best_performer": {"symbol": best.symbol, "profit_percent": best.profit_percent},
        "worst_performer": {"symbol": worst.symbol, "profit_percent": worst.profit_percent},
    }


def generate_action_items(
    recommendations: List[HoldingRecommendation],
    rebalancing: RebalancingPlan,
) -> List[ActionItem]:
    """Urgent calls first, then HIGH rebalancing, then one buy rollup; at most five."""
    actions: List[ActionItem] = []

    for rec in recommendations:
        if rec.urgency == "HIGH":
            actions.append(ActionItem(priority="HIGH", action=f"{rec.action}: {rec.symbol}", reason=rec.reasoning))

    for suggestion in rebalancing.suggestions:
        if suggestion.priority == "HIGH":
            actions.append(ActionItem(priority="HIGH", action=suggestion.message, reason=suggestion.type))

    buys = [r.symbol for r in recommendations if "BUY" in r.action and r.urgency != "HIGH"]
    if buys:
        actions.append(ActionItem(
            priority="MEDIUM",
            action=f"Consider buying: {', '.join(buys)}",
            reason="Strong AI scores",
        ))

    return actions[:MAX_ACTION_ITEMS]


# ============================================================================
# Analyzer
# ============================================================================

class PortfolioDailyAnalyzer:
    """Builds the daily portfolio report from the store and live market data."""

    def __init__(self, portfolio_store, stock_tools):
        self.store = portfolio_store
        self.stock_tools = stock_tools

    async def _fetch_score(self, symbol: str) -> HoldingScore:
        indicators = await self.stock_tools.get_technical_indicators(symbol)
        financial = await self.stock_tools.get_financial_info(symbol)
        return holding_score(indicators, financial)

    async def calculate_stock_score(self, symbol: str) -> HoldingScore:
        """Score one symbol; data failures fall back to a neutral 50 / HOLD."""
        symbol = normalize_symbol(symbol)
        try:
            return await self._fetch_score(symbol)
        except Exception as exc:
            logger.error("Error calculating AI score for %s: %s", symbol, exc)
            return HoldingScore(total_score=50, recommendation=holding_recommendation(50))

    async def analyze_portfolio(self) -> PortfolioAnalysis:
        summary = await self.store.get_summary(self.stock_tools)

        if not summary.stocks:
            return PortfolioAnalysis(is_empty=True)

        # No neutral fallback here: a holding without data is reported as UNKNOWN
        enriched: List[EnrichedHolding] = []
        for stock in summary.stocks:
            try:
                score = await self._fetch_score(stock.symbol)
                ind = score.indicators
                enriched.append(EnrichedHolding(
                    summary=stock,
                    ai_score=score.total_score,
                    ai_recommendation=score.recommendation,
                    technical_signal=ind.signal.action if ind else None,
                    rsi=ind.rsi if ind else None,
                    ma20=ind.ma20 if ind else None,
                    ma50=ind.ma50 if ind else None,
                ))
            except Exception as exc:
                logger.error("Error enriching %s: %s", stock.symbol, exc)
                enriched.append(EnrichedHolding(
                    summary=stock,
                    ai_score=None,
                    ai_recommendation=Recommendation("UNKNOWN", "❓"),
                ))

        sectors = await self.analyze_sector_distribution(enriched)

        return PortfolioAnalysis(
            is_empty=False,
            total_invested=summary.total_invested,
            total_current_value=summary.total_current_value,
            total_profit=summary.total_profit,
            total_profit_percent=summary.total_profit_percent,
            stocks=enriched,
            sector_analysis=sectors,
            performance_summary=performance_summary(enriched),
        )

    async def analyze_sector_distribution(self, stocks: List[EnrichedHolding]) -> List[SectorAllocation]:
        """Group current value by sector; holdings without a sector lookup are skipped."""
        sector_map: Dict[str, Dict[str, Any]] = {}
        total_value = 0.0

        for stock in stocks:
            try:
                sector = await self.stock_tools.get_sector(stock.symbol) or "Unknown"
            except Exception as exc:
                logger.error("Error getting sector for %s: %s", stock.symbol, exc)
                continue

            entry = sector_map.setdefault(sector, {"value": 0.0, "count": 0, "stocks": []})
            entry["value"] += stock.current_value
            entry["count"] += 1
            entry["stocks"].append(stock.symbol)
            total_value += stock.current_value

        breakdown = [
            SectorAllocation(
                sector=sector,
                value=data["value"],
                percentage=(data["value"] / total_value * 100) if total_value else 0.0,
                count=data["count"],
                stocks=data["stocks"],
            )
            for sector, data in sector_map.items()
        ]
        return sorted(breakdown, key=lambda s: s.value, reverse=True)

    async def generate_recommendations(self) -> List[HoldingRecommendation]:
        """
        Buy/hold/sell call per stored holding, highest score first.

        Holdings whose quote failed are still scored; only those without
        indicator data are skipped.
        """
        recommendations = []
        for symbol in [h.symbol for h in self.store.get_portfolio()]:
            score = await self.calculate_stock_score(symbol)
            if score.indicators is None:
                logger.warning("Skipping recommendation for %s: no indicator data", symbol)
                continue
            recommendations.append(HoldingRecommendation(
                symbol=symbol,
                action=score.recommendation.action,
                ai_score=score.total_score,
                reasoning=recommendation_reasoning(score.indicators),
                urgency=urgency_for(score.total_score, score.indicators.rsi),
            ))

        return sorted(recommendations, key=lambda r: r.ai_score, reverse=True)

    async def get_top_picks(self, overview: Optional[MarketOverview] = None) -> List[TopPick]:
        """Re-score the day's top gainers and keep the best five."""
        try:
            if overview is None:
                overview = await self.stock_tools.get_nasdaq100_overview()
        except Exception as exc:
            logger.error("Error getting top picks: %s", exc)
            return []

        picks = []
        for mover in overview.top_gainers[:10]:
            score = await self.calculate_stock_score(mover.symbol)
            picks.append(TopPick(
                symbol=mover.symbol,
                name=mover.name,
                price=mover.price,
                change_percent=mover.change_percent,
                ai_score=score.total_score,
                recommendation=score.recommendation,
            ))

        return sorted(picks, key=lambda p: p.ai_score, reverse=True)[:5]

    async def generate_daily_report(self) -> DailyReport:
        logger.info("Generating daily portfolio report...")
        self.store.load()

        analysis = await self.analyze_portfolio()
        recommendations = await self.generate_recommendations() if self.store.get_portfolio() else []
        rebalancing = generate_rebalancing_suggestions(analysis)

        try:
            overview = await self.stock_tools.get_nasdaq100_overview()
        except Exception as exc:
            logger.error("Market overview unavailable for daily report: %s", exc)
            overview = None

        top_picks = await self.get_top_picks(overview) if overview is not None else []

        return DailyReport(
            date=utc_now_iso(),
            portfolio=analysis,
            recommendations=recommendations,
            rebalancing=rebalancing,
            top_picks=top_picks,
            market_overview=overview,
            action_items=generate_action_items(recommendations, rebalancing),
        )
