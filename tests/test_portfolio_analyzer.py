"""Tests for daily portfolio analysis."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from stock_assistant.analytics.portfolio_analyzer import (
    EnrichedHolding,
    HoldingRecommendation,
    PortfolioAnalysis,
    PortfolioDailyAnalyzer,
    RebalancingPlan,
    SectorAllocation,
    check_sector_concentration,
    generate_action_items,
    generate_rebalancing_suggestions,
    holding_recommendation,
    holding_score,
    performance_summary,
    recommendation_reasoning,
    urgency_for,
)
from stock_assistant.domain.models import (
    FinancialInfo,
    HoldingSummary,
    Indicators,
    MarketMover,
    MarketOverview,
    Quote,
    RebalancingSuggestion,
    Signal,
)
from stock_assistant.providers.market import MarketDataError
from stock_assistant.storage.portfolio_store import PortfolioStore


def make_indicators(symbol="AAPL", price=110.0, ma20=105.0, ma50=100.0, rsi=50.0, action="BUY", reasoning="trend"):
    return Indicators(
        symbol=symbol, price=price, ma20=ma20, ma50=ma50, rsi=rsi, volume_ratio=1.0,
        signal=Signal(action=action, strength=2, reasoning=reasoning),
    )


def make_holding(symbol, profit_percent, value=1000.0):
    invested = value / (1 + profit_percent / 100)
    summary = HoldingSummary(
        symbol=symbol, shares=10, purchase_price=invested / 10, current_price=value / 10,
        invested=invested, current_value=value, profit=value - invested, profit_percent=profit_percent,
    )
    return EnrichedHolding(summary=summary, ai_score=50, ai_recommendation=holding_recommendation(50))


def make_analysis(stocks, total_profit_percent=0.0, sectors=None):
    return PortfolioAnalysis(
        is_empty=not stocks,
        total_profit_percent=total_profit_percent,
        stocks=stocks,
        sector_analysis=sectors or [],
    )


class TestHoldingScore:
    def test_bullish_setup_caps_at_100(self):
        fin = FinancialInfo(symbol="AAPL", pe_ratio=12.0, forward_pe=10.0)
        score = holding_score(make_indicators(), fin)
        assert score.total_score == 100
        assert score.recommendation.action == "STRONG_BUY"
        assert score.breakdown["trend"] == "Bullish"

    def test_bearish_setup_floors_at_0(self):
        ind = make_indicators(price=90.0, ma20=95.0, ma50=100.0, rsi=75.0, action="SELL")
        score = holding_score(ind, FinancialInfo(symbol="AAPL", pe_ratio=50.0))
        assert score.total_score == 0
        assert score.recommendation.action == "STRONG_SELL"
        assert score.breakdown["trend"] == "Bearish"

    def test_strong_signals_do_not_count_as_buy_or_sell(self):
        ind = make_indicators(price=100.0, ma20=100.0, ma50=100.0, action="STRONG_BUY")
        assert holding_score(ind, FinancialInfo(symbol="AAPL")).total_score == 50

    @pytest.mark.parametrize(
        "score,action",
        [(75, "STRONG_BUY"), (60, "BUY"), (59, "HOLD"), (40, "HOLD"), (25, "SELL"), (24, "STRONG_SELL")],
    )
    def test_recommendation_thresholds(self, score, action):
        rec = holding_recommendation(score)
        assert rec.action == action
        assert rec.color


class TestAdvice:
    def test_urgency(self):
        assert urgency_for(80, 50) == "HIGH"
        assert urgency_for(20, 50) == "HIGH"
        assert urgency_for(50, 75) == "MEDIUM"
        assert urgency_for(50, 25) == "MEDIUM"
        assert urgency_for(50, 60) == "LOW"
        assert urgency_for(50, None) == "LOW"

    def test_reasoning(self):
        ind = make_indicators(rsi=25.0, reasoning="Price above 20-day MA")
        assert recommendation_reasoning(ind) == (
            "Price above 20-day MA; RSI oversold condition; Strong uptrend (Golden Cross)"
        )
        neutral = make_indicators(price=100.0, ma20=None, ma50=None, action="NEUTRAL")
        assert recommendation_reasoning(neutral) == "Neutral technical indicators"

    def test_mixed_portfolio_rebalancing(self):
        analysis = make_analysis([
            make_holding("LOSE", -15.0),
            make_holding("WIN", 25.0),
            make_holding("FLAT", 0.0),
        ])
        plan = generate_rebalancing_suggestions(analysis)

        types = [s.type for s in plan.suggestions]
        assert types.count("REVIEW_LOSSES") == 1
        assert types.count("TAKE_PROFIT") == 1
        by_type = {s.type: s for s in plan.suggestions}
        assert by_type["REVIEW_LOSSES"].priority == "HIGH"
        assert "LOSE" in by_type["REVIEW_LOSSES"].message
        assert by_type["TAKE_PROFIT"].priority == "MEDIUM"
        assert "WIN" in by_type["TAKE_PROFIT"].message
        assert by_type["INCREASE_DIVERSIFICATION"].priority == "LOW"
        assert plan.needed

    def test_single_sector_portfolio_is_flagged(self):
        sectors = [SectorAllocation(sector="Technology", value=3000.0, percentage=100.0, count=3, stocks=["A", "B", "C"])]
        analysis = make_analysis([make_holding(s, 0.0) for s in "ABCDE"], sectors=sectors)

        assert check_sector_concentration(sectors).sector == "Technology"
        plan = generate_rebalancing_suggestions(analysis)
        assert plan.risks[0].type == "SECTOR_CONCENTRATION"
        assert plan.risks[0].severity == "HIGH"
        assert plan.risks[0].percentage == 100.0
        assert "DIVERSIFY" in [s.type for s in plan.suggestions]

    def test_balanced_sectors_not_flagged(self):
        sectors = [
            SectorAllocation("Technology", 500.0, 50.0, 1, ["A"]),
            SectorAllocation("Healthcare", 500.0, 50.0, 1, ["B"]),
        ]
        assert check_sector_concentration(sectors) is None

    def test_cash_position(self):
        winners = generate_rebalancing_suggestions(make_analysis([make_holding("A", 16.0)], total_profit_percent=16.0))
        assert "INCREASE_CASH" in [s.type for s in winners.suggestions]
        losers = generate_rebalancing_suggestions(make_analysis([make_holding("A", -11.0)], total_profit_percent=-11.0))
        assert "AVERAGING_DOWN" in [s.type for s in losers.suggestions]

    def test_empty_portfolio_needs_nothing(self):
        plan = generate_rebalancing_suggestions(make_analysis([]))
        assert not plan.needed
        assert plan.suggestions == []

    def test_performance_summary(self):
        perf = performance_summary([make_holding("A", 10.0), make_holding("B", -5.0), make_holding("C", 30.0)])
        assert perf["winners"] == 2
        assert perf["losers"] == 1
        assert perf["best_performer"]["symbol"] == "C"
        assert perf["worst_performer"]["symbol"] == "B"
        assert performance_summary([]) is None


class TestActionItems:
    def test_capped_at_five(self):
        recs = [HoldingRecommendation(f"S{i}", "STRONG_BUY", 90, "r", "HIGH") for i in range(7)]
        assert len(generate_action_items(recs, RebalancingPlan(needed=False))) == 5

    def test_ordering(self):
        recs = [
            HoldingRecommendation("URG", "STRONG_SELL", 10, "weak", "HIGH"),
            HoldingRecommendation("B1", "BUY", 65, "ok", "LOW"),
            HoldingRecommendation("B2", "BUY", 62, "ok", "MEDIUM"),
            HoldingRecommendation("H", "HOLD", 50, "meh", "LOW"),
        ]
        plan = RebalancingPlan(needed=True, suggestions=[
            RebalancingSuggestion("REVIEW_LOSSES", "review X", "HIGH"),
            RebalancingSuggestion("TAKE_PROFIT", "take Y", "MEDIUM"),
        ])
        items = generate_action_items(recs, plan)

        assert [i.action for i in items] == [
            "STRONG_SELL: URG",
            "review X",
            "Consider buying: B1, B2",
        ]
        assert items[2].priority == "MEDIUM"


def _analyzer(tmp_path, holdings, sectors=None, failing_indicators=(), failing_quotes=()):
    store = PortfolioStore(tmp_path / "portfolio.json")
    for symbol, shares, price in holdings:
        store.add_stock(symbol, shares, price)

    async def get_price(symbol):
        if symbol in failing_quotes:
            raise MarketDataError(f"Failed to fetch price for {symbol}: no data")
        return Quote(symbol=symbol, name=symbol, price=110.0, change_percent=1.0)

    async def get_indicators(symbol):
        if symbol in failing_indicators:
            raise MarketDataError(f"Failed to calculate indicators for {symbol}: no rows")
        return make_indicators(symbol=symbol)

    async def get_sector(symbol):
        value = (sectors or {}).get(symbol, "Technology")
        if isinstance(value, Exception):
            raise value
        return value

    stock_tools = MagicMock()
    stock_tools.get_stock_price = AsyncMock(side_effect=get_price)
    stock_tools.get_technical_indicators = AsyncMock(side_effect=get_indicators)
    stock_tools.get_financial_info = AsyncMock(
        side_effect=lambda s: FinancialInfo(symbol=s, pe_ratio=20.0, forward_pe=18.0)
    )
    stock_tools.get_sector = AsyncMock(side_effect=get_sector)
    stock_tools.get_nasdaq100_overview = AsyncMock(return_value=MarketOverview(
        market_trend="Bullish",
        top_gainers=[MarketMover("NVDA", "NVIDIA", 900.0, 3.0), MarketMover("AMD", "AMD", 150.0, 2.0)],
        top_losers=[MarketMover("INTC", "Intel", 30.0, -1.0)],
    ))
    return PortfolioDailyAnalyzer(store, stock_tools), stock_tools


class TestAnalyzer:
    def test_failed_data_falls_back_to_neutral_score(self, tmp_path):
        analyzer, _ = _analyzer(tmp_path, [], failing_indicators=("AAPL",))
        score = asyncio.run(analyzer.calculate_stock_score("AAPL"))
        assert score.total_score == 50
        assert score.recommendation.action == "HOLD"
        assert score.indicators is None

    def test_enrichment_failure_marks_holding_unknown(self, tmp_path):
        analyzer, stock_tools = _analyzer(
            tmp_path, [("AAPL", 10, 100.0), ("MSFT", 5, 100.0)], failing_indicators=("AAPL",)
        )
        stock_tools.get_financial_info.side_effect = MarketDataError("Failed to fetch financial info for AAPL")

        analysis = asyncio.run(analyzer.analyze_portfolio())

        by_symbol = {s.symbol: s for s in analysis.stocks}
        assert by_symbol["AAPL"].summary.current_price == 110.0
        assert by_symbol["AAPL"].ai_score is None
        assert by_symbol["AAPL"].ai_recommendation.action == "UNKNOWN"
        assert by_symbol["AAPL"].technical_signal is None
        assert by_symbol["MSFT"].ai_recommendation.action == "UNKNOWN"

    def test_indicator_failure_alone_marks_holding_unknown(self, tmp_path):
        analyzer, _ = _analyzer(
            tmp_path, [("AAPL", 10, 100.0), ("MSFT", 5, 100.0)], failing_indicators=("AAPL",)
        )
        analysis = asyncio.run(analyzer.analyze_portfolio())

        by_symbol = {s.symbol: s for s in analysis.stocks}
        assert by_symbol["AAPL"].ai_score is None
        assert by_symbol["MSFT"].ai_score == 90

    def test_single_sector_portfolio_flags_full_concentration(self, tmp_path):
        analyzer, _ = _analyzer(tmp_path, [("AAPL", 10, 100.0), ("MSFT", 5, 130.0), ("NVDA", 2, 400.0)])
        analysis = asyncio.run(analyzer.analyze_portfolio())

        assert [s.sector for s in analysis.sector_analysis] == ["Technology"]
        assert analysis.sector_analysis[0].percentage == pytest.approx(100.0)

        plan = generate_rebalancing_suggestions(analysis)
        risk = plan.risks[0]
        assert risk.type == "SECTOR_CONCENTRATION"
        assert risk.percentage == pytest.approx(100.0)
        assert "Technology sector represents 100.0% of portfolio" == risk.message

    def test_recommendations_cover_holdings_without_quotes(self, tmp_path):
        analyzer, _ = _analyzer(tmp_path, [("AAPL", 10, 100.0), ("MSFT", 5, 100.0)], failing_quotes=("MSFT",))

        analysis = asyncio.run(analyzer.analyze_portfolio())
        assert [s.symbol for s in analysis.stocks] == ["AAPL"]

        recs = asyncio.run(analyzer.generate_recommendations())
        assert {r.symbol for r in recs} == {"AAPL", "MSFT"}

    def test_sector_lookup_failure_excludes_holding(self, tmp_path):
        analyzer, _ = _analyzer(
            tmp_path,
            [("AAPL", 10, 100.0), ("JNJ", 10, 100.0)],
            sectors={"JNJ": RuntimeError("lookup failed")},
        )
        analysis = asyncio.run(analyzer.analyze_portfolio())

        assert len(analysis.stocks) == 2
        assert [s.sector for s in analysis.sector_analysis] == ["Technology"]
        assert analysis.sector_analysis[0].percentage == pytest.approx(100.0)

    def test_empty_portfolio_report(self, tmp_path):
        analyzer, _ = _analyzer(tmp_path, [])
        report = asyncio.run(analyzer.generate_daily_report())

        assert report.portfolio.is_empty
        assert report.recommendations == []
        assert not report.rebalancing.needed
        assert report.market_overview.market_trend == "Bullish"

    def test_daily_report(self, tmp_path):
        analyzer, _ = _analyzer(tmp_path, [("AAPL", 10, 100.0), ("MSFT", 5, 130.0)])
        report = asyncio.run(analyzer.generate_daily_report())

        assert not report.portfolio.is_empty
        assert {s.symbol for s in report.portfolio.stocks} == {"AAPL", "MSFT"}
        # BUY +20, price > MA20 > MA50 +10, forward P/E discount +10
        assert all(s.ai_score == 90 for s in report.portfolio.stocks)
        assert [r.urgency for r in report.recommendations] == ["HIGH", "HIGH"]
        assert [p.symbol for p in report.top_picks] == ["NVDA", "AMD"]
        assert len(report.action_items) <= 5

        data = report.to_dict()
        assert data["portfolio"]["stocks"][0]["ai_recommendation"]["action"] == "STRONG_BUY"
        assert data["market_overview"]["market_trend"] == "Bullish"

    def test_market_overview_failure_does_not_abort_report(self, tmp_path):
        analyzer, stock_tools = _analyzer(tmp_path, [("AAPL", 10, 100.0)])
        stock_tools.get_nasdaq100_overview = AsyncMock(side_effect=RuntimeError("down"))

        report = asyncio.run(analyzer.generate_daily_report())
        assert report.market_overview is None
        assert report.top_picks == []

    def test_recommendations_sorted_by_score(self, tmp_path):
        analyzer, stock_tools = _analyzer(tmp_path, [("AAPL", 1, 100.0), ("MSFT", 1, 100.0)])

        async def get_indicators(symbol):
            if symbol == "AAPL":
                return make_indicators(symbol=symbol, action="SELL", rsi=60.0)
            return make_indicators(symbol=symbol)

        stock_tools.get_technical_indicators = AsyncMock(side_effect=get_indicators)
        recs = asyncio.run(analyzer.generate_recommendations())
        assert [r.symbol for r in recs] == ["MSFT", "AAPL"]
        assert recs[0].ai_score > recs[1].ai_score
