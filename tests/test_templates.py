from stock_assistant.analytics.portfolio_analyzer import DailyReport, PortfolioAnalysis, RebalancingPlan
from stock_assistant.domain.models import ActionItem, Indicators, MarketMover, MarketOverview, Quote, Signal
from stock_assistant.notifications import templates


def _empty_report(**overrides):
    values = dict(
        date="2024-03-01T09:00:00Z",
        portfolio=PortfolioAnalysis(is_empty=True),
        recommendations=[],
        rebalancing=RebalancingPlan(needed=False),
        top_picks=[],
        market_overview=None,
        action_items=[],
    )
    values.update(overrides)
    return DailyReport(**values)


def test_daily_report_for_empty_portfolio():
    report = _empty_report()

    assert templates.daily_report_subject(report) == "📈 Daily Portfolio Report - 2024-03-01"
    html = templates.daily_report_html(report)
    assert "Your portfolio is empty" in html
    assert "Portfolio is well balanced" in html
    assert "Market Trend" not in html


def test_daily_report_includes_market_and_actions():
    overview = MarketOverview(
        market_trend="Bullish",
        top_gainers=[MarketMover("NVDA", "NVIDIA", 900.0, 3.2)],
        top_losers=[],
    )
    report = _empty_report(
        market_overview=overview,
        action_items=[ActionItem("HIGH", "Sell <TSLA>", "Stop loss")],
    )

    html = templates.daily_report_html(report)
    assert "Market Trend: Bullish" in html
    assert "NVDA" in html
    assert "Sell &lt;TSLA&gt;" in html


def test_technical_alert():
    indicators = Indicators(
        symbol="AMD", price=150.0, ma20=140.0, ma50=130.0, rsi=72.0, volume_ratio=1.1,
        signal=Signal(action="STRONG_BUY", strength=5, reasoning="Strong uptrend"),
    )
    assert templates.technical_alert_subject(indicators) == "🎯 AMD Technical Signal: STRONG_BUY"
    html = templates.technical_alert_html(indicators)
    assert "🚀 STRONG_BUY" in html
    assert "$140.00" in html


def test_price_alert_escapes_name():
    quote = Quote(symbol="X", name="<b>Evil</b>", price=1.0, change=-0.1, change_percent=-9.1)
    html = templates.price_alert_html(quote)
    assert "&lt;b&gt;Evil&lt;/b&gt;" in html
    assert "▼ 0.10 (-9.10%)" in html


def test_portfolio_recommendation_table():
    html = templates.portfolio_recommendation_html({
        "total_value": 10000,
        "expected_return": 12.5,
        "risk_score": 6.2,
        "stocks": [{"symbol": "MSFT", "sector": None, "shares": 5, "value": 2000, "ai_score": 82}],
    })
    assert "$10,000.00" in html
    assert "12.50%" in html
    assert "6.2/10" in html
    assert "Unknown" in html
