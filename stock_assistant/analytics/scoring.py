"""AI scoring engine: five weighted heuristic sub-scores per symbol."""

import logging
from typing import Dict, Optional

import numpy as np

from ..domain.models import FinancialInfo, Indicators, Recommendation, ScoreBreakdown, normalize_symbol

logger = logging.getLogger(__name__)

BASELINE = 50.0

WEIGHTS: Dict[str, float] = {
    "technical": 0.25,
    "fundamental": 0.25,
    "sentiment": 0.20,
    "momentum": 0.15,
    "risk": 0.15,
}


def clamp_score(score: float) -> float:
    return float(min(100.0, max(0.0, score)))


def technical_score(indicators: Indicators) -> float:
    """RSI zone, MA cross and volume surge."""
    score = BASELINE

    if indicators.rsi is not None:
        if indicators.rsi < 30:
            score += 20
        elif indicators.rsi > 70:
            score -= 20

    if indicators.ma20 is not None and indicators.ma50 is not None and indicators.ma20 > indicators.ma50:
        score += 15

    if indicators.volume_ratio is not None and indicators.volume_ratio > 1.5:
        score += 10

    return clamp_score(score)


def fundamental_score(financial: FinancialInfo) -> float:
    """P/E, PEG and profitability."""
    score = BASELINE

    pe = financial.pe_ratio
    if pe:
        if pe < 15:
            score += 20
        elif pe > 35:
            score -= 20

    peg = financial.peg_ratio
    if peg and peg < 1:
        score += 15

    margin = financial.profit_margins
    if margin and margin > 0.15:
        score += 15

    return clamp_score(score)


def sentiment_score(financial: FinancialInfo, news_sentiment: Optional[float] = None) -> float:
    """Analyst consensus, price target upside and (optionally) news tone."""
    score = BASELINE

    # Yahoo scale: 1 = strong buy ... 5 = sell
    mean = financial.recommendation_mean
    if mean is not None:
        if mean <= 2.0:
            score += 15
        elif mean >= 3.5:
            score -= 15

    target = financial.target_mean_price
    current = financial.current_price
    if target and current:
        if target >= current * 1.10:
            score += 10
        elif target < current:
            score -= 10

    if news_sentiment is not None:
        if news_sentiment >= 0.15:
            score += 15
        elif news_sentiment <= -0.15:
            score -= 15

    return clamp_score(score)


def momentum_score(indicators: Indicators) -> float:
    """Trend position plus price/volume confirmation."""
    score = BASELINE
    price, ma20, ma50 = indicators.price, indicators.ma20, indicators.ma50

    if price is not None and ma20 is not None:
        if price > ma20:
            score += 10
            if indicators.volume_ratio is not None and indicators.volume_ratio > 1.5:
                score += 15
        elif price < ma20:
            score -= 10

    if ma20 is not None and ma50 is not None:
        if ma20 > ma50:
            score += 10
        elif ma20 < ma50:
            score -= 10

    return clamp_score(score)


def risk_score(financial: FinancialInfo, indicators: Indicators) -> float:
    """Higher is safer: low beta, no overheating, profitable, calm volume."""
    score = BASELINE

    beta = financial.beta
    if beta is not None:
        if beta < 1:
            score += 15
        elif beta > 1.5:
            score -= 15

    if indicators.rsi is not None and indicators.rsi > 70:
        score -= 10

    if financial.profit_margins is not None and financial.profit_margins < 0:
        score -= 10

    if indicators.volume_ratio is not None and indicators.volume_ratio > 3:
        score -= 10

    return clamp_score(score)


def weighted_total(sub_scores: Dict[str, float]) -> float:
    return sum(sub_scores[key] * weight for key, weight in WEIGHTS.items())


def recommendation_for(total: float) -> Recommendation:
    if total >= 80:
        return Recommendation("STRONG_BUY", "🚀")
    if total >= 65:
        return Recommendation("BUY", "📈")
    if total >= 35:
        return Recommendation("HOLD", "⏸️")
    if total >= 20:
        return Recommendation("SELL", "📉")
    return Recommendation("STRONG_SELL", "⚠️")


def confidence_for(sub_scores: Dict[str, float]) -> str:
    """Agreement between sub-scores, from their population variance."""
    variance = float(np.var(list(sub_scores.values())))
    if variance < 100:
        return "HIGH"
    if variance < 300:
        return "MEDIUM"
    return "LOW"


def build_breakdown(
    symbol: str,
    indicators: Indicators,
    financial: FinancialInfo,
    news_sentiment: Optional[float] = None,
) -> ScoreBreakdown:
    sub_scores = {
        "technical": technical_score(indicators),
        "fundamental": fundamental_score(financial),
        "sentiment": sentiment_score(financial, news_sentiment),
        "momentum": momentum_score(indicators),
        "risk": risk_score(financial, indicators),
    }
    total = weighted_total(sub_scores)

    return ScoreBreakdown(
        symbol=symbol,
        total_score=total,
        recommendation=recommendation_for(total),
        confidence=confidence_for(sub_scores),
        **sub_scores,
    )


class AIScoreEngine:
    """Fetches indicators and fundamentals, then scores them."""

    def __init__(self, stock_tools, sentiment_provider=None):
        self.stock_tools = stock_tools
        self.sentiment_provider = sentiment_provider

    async def score(self, symbol: str) -> ScoreBreakdown:
        symbol = normalize_symbol(symbol)
        indicators = await self.stock_tools.get_technical_indicators(symbol)
        financial = await self.stock_tools.get_financial_info(symbol)

        news_sentiment = None
        if self.sentiment_provider is not None:
            news_sentiment = await self.sentiment_provider.get_sentiment(symbol)

        breakdown = build_breakdown(symbol, indicators, financial, news_sentiment)
        logger.info(
            "AI score for %s: %.1f (%s, confidence %s)",
            symbol, breakdown.total_score, breakdown.recommendation.action, breakdown.confidence,
        )
        return breakdown
