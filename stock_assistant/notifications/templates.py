"""HTML bodies for outbound emails (inline styles, no template engine)."""

from datetime import datetime
from html import escape
from typing import Any, List, Mapping, Optional

from ..domain.models import (
    ActionItem,
    HoldingSummary,
    Indicators,
    MarketOverview,
    Quote,
)

GREEN = "#27ae60"
RED = "#e74c3c"
GREY = "#7f8c8d"

SIGNAL_COLORS = {
    "STRONG_BUY": "#27ae60",
    "BUY": "#2ecc71",
    "NEUTRAL": "#95a5a6",
    "SELL": "#e67e22",
    "STRONG_SELL": "#e74c3c",
}

SIGNAL_EMOJIS = {
    "STRONG_BUY": "🚀",
    "BUY": "📈",
    "NEUTRAL": "⏸️",
    "SELL": "📉",
    "STRONG_SELL": "⚠️",
}

PRIORITY_COLORS = {"HIGH": "#e74c3c", "MEDIUM": "#f39c12", "LOW": "#3498db"}

ALERT_SUBJECTS = {
    "PRICE_CHANGE": "🚨 {symbol} changed {change:.2f}% today",
    "PROFIT_TARGET": "💰 {symbol} reached {profit:.2f}% profit!",
    "LOSS_ALERT": "⚠️ {symbol} is down {profit:.2f}%",
}


def _money(value: Optional[float]) -> str:
    return f"${value:,.2f}" if value is not None else "N/A"


def _num(value: Optional[float], digits: int = 2) -> str:
    return f"{value:.{digits}f}" if value is not None else "N/A"


def _signed_pct(value: Optional[float]) -> str:
    return f"{value:+.2f}%" if value is not None else "N/A"


def _color(value: Optional[float]) -> str:
    return GREEN if (value or 0) >= 0 else RED


def _wrap(body: str, width: int = 600) -> str:
    return (
        f'<div style="font-family: Arial, sans-serif; max-width: {width}px; margin: 0 auto;">'
        f"{body}"
        f'<p style="color: {GREY}; font-size: 12px; text-align: center; margin-top: 20px;">'
        f"Generated at {datetime.now():%Y-%m-%d %H:%M:%S}</p>"
        "</div>"
    )


def signal_color(action: str) -> str:
    return SIGNAL_COLORS.get(action, "#95a5a6")


def signal_emoji(action: str) -> str:
    return SIGNAL_EMOJIS.get(action, "📊")


# ============================================================================
# Single alerts
# ============================================================================

def price_alert_subject(quote: Quote) -> str:
    return f"📊 {quote.symbol} Stock Alert - {_money(quote.price)}"


def price_alert_html(quote: Quote) -> str:
    change = quote.change or 0.0
    arrow = "▲" if change >= 0 else "▼"
    market_cap = f"${quote.market_cap / 1e9:.2f}B" if quote.market_cap else "N/A"
    volume = f"{quote.volume:,.0f}" if quote.volume is not None else "N/A"

    return _wrap(
        '<h2 style="color: #2c3e50;">Stock Price Alert</h2>'
        '<div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="margin-top: 0;">{escape(quote.symbol)} - {escape(quote.name or "")}</h3>'
        f'<p style="font-size: 24px; font-weight: bold; color: {_color(change)};">{_money(quote.price)}</p>'
        f'<p style="color: {_color(change)};">{arrow} {abs(change):.2f} ({_num(quote.change_percent)}%)</p>'
        "</div>"
        f"<p><strong>Volume:</strong> {volume}</p>"
        f"<p><strong>Market Cap:</strong> {market_cap}</p>"
        f"<p><strong>Day Range:</strong> {_num(quote.day_low)} - {_num(quote.day_high)}</p>"
    )


def technical_alert_subject(indicators: Indicators) -> str:
    return f"🎯 {indicators.symbol} Technical Signal: {indicators.signal.action}"


def technical_alert_html(indicators: Indicators) -> str:
    action = indicators.signal.action
    rows = [
        ("Current Price", _money(indicators.price)),
        ("MA(20)", _money(indicators.ma20)),
        ("MA(50)", _money(indicators.ma50)),
        ("RSI(14)", _num(indicators.rsi)),
    ]
    table = "".join(
        f'<tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><strong>{label}:</strong></td>'
        f'<td style="padding: 8px; border-bottom: 1px solid #ddd;">{value}</td></tr>'
        for label, value in rows
    )

    return _wrap(
        '<h2 style="color: #2c3e50;">Technical Analysis Alert</h2>'
        f'<div style="background: {signal_color(action)}; padding: 20px; border-radius: 8px; margin: 20px 0; color: white;">'
        f'<h3 style="margin-top: 0;">{escape(indicators.symbol)}</h3>'
        f'<p style="font-size: 28px; font-weight: bold;">{signal_emoji(action)} {escape(action)}</p>'
        f"<p>{escape(indicators.signal.reasoning)}</p>"
        "</div>"
        '<div style="background: #f8f9fa; padding: 20px; border-radius: 8px;">'
        "<h4>Technical Indicators:</h4>"
        f'<table style="width: 100%; border-collapse: collapse;">{table}</table>'
        "</div>"
    )


def portfolio_alert_subject(stock: HoldingSummary, alert_type: str) -> str:
    template = ALERT_SUBJECTS.get(alert_type, "📈 {symbol} portfolio alert")
    return template.format(symbol=stock.symbol, change=stock.change_today, profit=stock.profit_percent)


def portfolio_alert_html(stock: HoldingSummary, alert_type: str) -> str:
    is_profit = stock.profit >= 0
    color = GREEN if is_profit else RED
    label = "Profit" if is_profit else "Loss"

    return _wrap(
        f'<h2 style="color: #2c3e50;">📈 Portfolio Alert: {escape(alert_type)}</h2>'
        f'<div style="background: {color}; color: white; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="margin-top: 0;">{escape(stock.symbol)}</h3>'
        f'<p style="font-size: 18px; margin: 5px 0;">Current: {_money(stock.current_price)}</p>'
        f'<p style="font-size: 16px; margin: 5px 0;">Today: {_signed_pct(stock.change_today)}</p>'
        "</div>"
        '<div style="background: #f8f9fa; padding: 20px; border-radius: 8px;">'
        "<h4>Your Position</h4>"
        f"<p><strong>Shares:</strong> {stock.shares:g}</p>"
        f"<p><strong>Purchase Price:</strong> {_money(stock.purchase_price)}</p>"
        f"<p><strong>Invested:</strong> {_money(stock.invested)}</p>"
        f"<p><strong>Current Value:</strong> {_money(stock.current_value)}</p>"
        f'<p style="color: {color}; font-size: 20px; font-weight: bold;">'
        f"{label}: {'+' if is_profit else '-'}{_money(abs(stock.profit))} ({_signed_pct(stock.profit_percent)})</p>"
        "</div>"
    )


# ============================================================================
# Market overview / recommendation
# ============================================================================

def _movers_table(movers, color: str) -> str:
    return (
        '<table style="width: 100%; border-collapse: collapse;">'
        + "".join(
            '<tr style="border-bottom: 1px solid #ddd;">'
            f'<td style="padding: 10px;"><strong>{escape(m.symbol)}</strong></td>'
            f'<td style="padding: 10px;">{escape(m.name or "")}</td>'
            f'<td style="padding: 10px; text-align: right; color: {color};">{_signed_pct(m.change_percent)}</td>'
            "</tr>"
            for m in movers
        )
        + "</table>"
    )


def market_overview_subject(overview: MarketOverview) -> str:
    return f"📈 NASDAQ-100 Market Overview - {overview.market_trend}"


def market_overview_section(overview: Optional[MarketOverview]) -> str:
    if overview is None:
        return ""

    background = "#d4edda" if overview.market_trend == "Bullish" else "#f8d7da"
    return (
        f'<div style="text-align: center; padding: 20px; background: {background}; border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="margin: 0;">Market Trend: {escape(overview.market_trend)}</h3>'
        "</div>"
        f'<h3 style="color: {GREEN};">📈 Top 5 Gainers</h3>'
        f"{_movers_table(overview.top_gainers, GREEN)}"
        f'<h3 style="color: {RED};">📉 Top 5 Losers</h3>'
        f"{_movers_table(overview.top_losers, RED)}"
    )


def market_overview_html(overview: MarketOverview) -> str:
    return _wrap('<h2 style="color: #2c3e50;">NASDAQ-100 Daily Summary</h2>' + market_overview_section(overview))


def portfolio_recommendation_html(recommendation: Mapping[str, Any]) -> str:
    """
    Suggested allocation table.

    Expects total_value, expected_return, risk_score and a list of stocks
    with symbol, sector, shares, value and ai_score.
    """
    rows = "".join(
        '<tr style="border-bottom: 1px solid #ddd;">'
        f'<td style="padding: 10px;"><strong>{escape(str(s.get("symbol", "")))}</strong></td>'
        f'<td style="padding: 10px;">{escape(str(s.get("sector") or "Unknown"))}</td>'
        f'<td style="padding: 10px; text-align: right;">{s.get("shares", "")}</td>'
        f'<td style="padding: 10px; text-align: right;">{_money(s.get("value"))}</td>'
        '<td style="padding: 10px; text-align: center;">'
        f'<span style="background: {GREEN if (s.get("ai_score") or 0) >= 70 else "#f39c12"}; '
        f'color: white; padding: 4px 8px; border-radius: 4px;">{s.get("ai_score", "")}</span></td>'
        "</tr>"
        for s in recommendation.get("stocks") or []
    )

    return _wrap(
        '<h2 style="color: #2c3e50;">Portfolio Recommendation</h2>'
        '<div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        "<h3>Portfolio Summary</h3>"
        f"<p><strong>Total Value:</strong> {_money(recommendation.get('total_value'))}</p>"
        f"<p><strong>Expected Return:</strong> {_num(recommendation.get('expected_return'))}%</p>"
        f"<p><strong>Risk Score:</strong> {_num(recommendation.get('risk_score'), 1)}/10</p>"
        "</div>"
        "<h3>Recommended Stocks</h3>"
        '<table style="width: 100%; border-collapse: collapse;">'
        '<thead><tr style="background: #e9ecef;">'
        '<th style="padding: 10px; text-align: left;">Symbol</th>'
        '<th style="padding: 10px; text-align: left;">Sector</th>'
        '<th style="padding: 10px; text-align: right;">Shares</th>'
        '<th style="padding: 10px; text-align: right;">Value</th>'
        '<th style="padding: 10px; text-align: center;">Score</th>'
        f"</tr></thead><tbody>{rows}</tbody></table>"
        f'<p style="color: {GREY}; font-size: 12px; text-align: center;">'
        "This is not financial advice. Please do your own research.</p>"
    )


# ============================================================================
# Daily report
# ============================================================================

def _card(title: str, body: str) -> str:
    return (
        '<div style="background: white; padding: 25px; border-radius: 10px; margin-bottom: 20px;">'
        f'<h2 style="margin-top: 0; color: #2c3e50;">{title}</h2>{body}</div>'
    )


def portfolio_summary_section(portfolio) -> str:
    if portfolio.is_empty:
        return _card(
            "📭 Your portfolio is empty",
            f'<p style="color: {GREY};">Add stocks to start tracking your portfolio!</p>',
        )

    color = _color(portfolio.total_profit)
    perf = portfolio.performance_summary or {}
    best = perf.get("best_performer") or {}
    worst = perf.get("worst_performer") or {}

    body = (
        f"<p><strong>Invested:</strong> {_money(portfolio.total_invested)}</p>"
        f"<p><strong>Current Value:</strong> {_money(portfolio.total_current_value)}</p>"
        f'<p style="color: {color}; font-size: 20px; font-weight: bold;">'
        f"P/L: {_money(portfolio.total_profit)} ({_signed_pct(portfolio.total_profit_percent)})</p>"
    )
    if perf:
        body += (
            f"<p>Winners: {perf['winners']} | Losers: {perf['losers']} | Win rate: {perf['win_rate']:.1f}%</p>"
            f"<p>Best: {escape(best.get('symbol', ''))} ({_signed_pct(best.get('profit_percent'))}) | "
            f"Worst: {escape(worst.get('symbol', ''))} ({_signed_pct(worst.get('profit_percent'))})</p>"
        )
    return _card("💼 Portfolio Summary", body)


def holdings_section(portfolio) -> str:
    if portfolio.is_empty or not portfolio.stocks:
        return ""

    rows = []
    for stock in portfolio.stocks:
        rec = stock.ai_recommendation
        score = stock.ai_score if stock.ai_score is not None else "N/A"
        rows.append(
            '<tr style="border-bottom: 1px solid #eee;">'
            f'<td style="padding: 8px;"><strong>{escape(stock.symbol)}</strong></td>'
            f'<td style="padding: 8px; text-align: right;">{_money(stock.summary.current_price)}</td>'
            f'<td style="padding: 8px; text-align: right; color: {_color(stock.profit_percent)};">'
            f"{_signed_pct(stock.profit_percent)}</td>"
            f'<td style="padding: 8px; text-align: center;">{score}</td>'
            f'<td style="padding: 8px; text-align: center; color: {rec.color or GREY};">'
            f"{rec.emoji} {escape(rec.action)}</td>"
            f'<td style="padding: 8px; text-align: right;">{_num(stock.rsi, 1)}</td>'
            "</tr>"
        )

    sectors = "".join(
        f"<li>{escape(s.sector)}: {s.percentage:.1f}% ({', '.join(escape(x) for x in s.stocks)})</li>"
        for s in portfolio.sector_analysis
    )

    body = (
        '<table style="width: 100%; border-collapse: collapse;">'
        '<thead><tr style="background: #f8f9fa;">'
        "<th>Symbol</th><th>Price</th><th>P/L</th><th>AI Score</th><th>Call</th><th>RSI</th>"
        f"</tr></thead><tbody>{''.join(rows)}</tbody></table>"
    )
    if sectors:
        body += f"<h3>Sector Allocation</h3><ul>{sectors}</ul>"
    return _card("📊 Holdings Analysis", body)


def top_picks_section(top_picks) -> str:
    if not top_picks:
        return ""

    items = "".join(
        '<div style="padding: 10px; border-left: 4px solid '
        f'{pick.recommendation.color or GREY}; margin-bottom: 10px; background: #fafafa;">'
        f"<strong>{escape(pick.symbol)}</strong> {escape(pick.name or '')} "
        f"{_money(pick.price)} ({_signed_pct(pick.change_percent)}) | "
        f"AI Score {pick.ai_score} {pick.recommendation.emoji} {escape(pick.recommendation.action)}"
        "</div>"
        for pick in top_picks
    )
    return _card("⭐ Today's Top Picks", items)


def rebalancing_section(rebalancing) -> str:
    if not rebalancing.needed and not rebalancing.risks:
        return _card("⚖️ Rebalancing", '<p style="color: #27ae60;">✅ Portfolio is well balanced</p>')

    risks = "".join(
        f'<p style="color: {RED};">⚠️ {escape(r.message)}</p>' for r in rebalancing.risks
    )
    suggestions = "".join(
        f'<p><span style="color: {PRIORITY_COLORS.get(s.priority, GREY)}; font-weight: bold;">'
        f"[{s.priority}]</span> {escape(s.message)}</p>"
        for s in rebalancing.suggestions
    )
    return _card("⚖️ Rebalancing Suggestions", risks + suggestions)


def action_items_section(action_items: List[ActionItem]) -> str:
    if not action_items:
        return ""

    items = "".join(
        f'<li style="margin-bottom: 8px;"><span style="color: {PRIORITY_COLORS.get(a.priority, GREY)}; '
        f'font-weight: bold;">[{a.priority}]</span> {escape(a.action)}'
        f'<br><small style="color: {GREY};">{escape(a.reason)}</small></li>'
        for a in action_items
    )
    return _card("✅ Action Items", f"<ol>{items}</ol>")


def daily_report_subject(report) -> str:
    return f"📈 Daily Portfolio Report - {report.date[:10]}"


def daily_report_html(report) -> str:
    market = market_overview_section(report.market_overview)
    header = (
        '<div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; '
        'padding: 30px; border-radius: 10px; text-align: center; margin-bottom: 20px;">'
        '<h1 style="margin: 0; font-size: 28px;">📊 Daily Portfolio Report</h1>'
        f'<p style="margin: 10px 0 0 0; opacity: 0.9;">{escape(report.date[:10])}</p>'
        "</div>"
    )
    body = (
        header
        + portfolio_summary_section(report.portfolio)
        + holdings_section(report.portfolio)
        + top_picks_section(report.top_picks)
        + rebalancing_section(report.rebalancing)
        + (_card("🌐 Market Overview", market) if market else "")
        + action_items_section(report.action_items)
        + f'<p style="color: {GREY}; font-size: 12px; text-align: center;">'
        "⚠️ This is not financial advice. Please do your own research.</p>"
    )
    return (
        '<div style="font-family: \'Segoe UI\', Arial, sans-serif; background: #f5f5f5; padding: 20px;">'
        f"{_wrap(body, width=800)}</div>"
    )
