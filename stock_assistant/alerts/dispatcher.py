"""Alert dispatcher - evaluates trigger rules and hands triggered alerts to the mailer."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..config import Config
from ..domain.models import normalize_symbol
from .rules import (
    eval_ai_signal,
    eval_day_change,
    eval_loss_limit,
    eval_price_breakout,
    eval_profit_target,
    eval_reference_move,
    eval_strong_signal,
    eval_volume_spike,
)

logger = logging.getLogger(__name__)


@dataclass
class AlertEvent:
    """Alert event - ready to send to the user."""
    symbol: str
    alert_type: str
    message: str
    value: Optional[float] = None
    urgency: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MonitorOptions:
    """Portfolio monitor settings; thresholds are percentages."""
    check_interval_minutes: float = 5.0
    price_alert_threshold: float = 5.0
    profit_alert_threshold: float = 10.0
    loss_alert_threshold: float = -5.0
    email: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "MonitorOptions":
        """Config defaults, replaced by any override that is not None."""
        options = cls(
            check_interval_minutes=config.monitor_interval_minutes,
            price_alert_threshold=config.price_alert_threshold,
            profit_alert_threshold=config.profit_alert_threshold,
            loss_alert_threshold=config.loss_alert_threshold,
            email=config.notification_email,
        )
        for key, value in overrides.items():
            if value is not None and hasattr(options, key):
                setattr(options, key, value)
        return options

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WatchState:
    """Mutable state of one single-stock watch."""
    symbol: str
    threshold_percent: float = 5.0
    reference_price: Optional[float] = None
    email: Optional[str] = None


class AlertDispatcher:
    """Evaluates alert rules against live data and emails what triggers."""

    def __init__(self, portfolio_store, stock_tools, notifier, ai_engine=None, analyzer=None):
        self.store = portfolio_store
        self.stock_tools = stock_tools
        self.notifier = notifier
        self.ai_engine = ai_engine
        self.analyzer = analyzer

    async def check_portfolio(self, options: MonitorOptions) -> List[AlertEvent]:
        """One portfolio tick: day move, profit target and loss limit per holding."""
        logger.info("Checking portfolio...")
        summary = await self.store.get_summary(self.stock_tools)
        events: List[AlertEvent] = []

        for stock in summary.stocks:
            logger.info(
                "%s: $%.2f | Day: %+.2f%% | Total: %+.2f%%",
                stock.symbol, stock.current_price, stock.change_today, stock.profit_percent,
            )

            checks = (
                ("PRICE_CHANGE", eval_day_change(stock, options.price_alert_threshold)),
                ("PROFIT_TARGET", eval_profit_target(stock, options.profit_alert_threshold)),
                ("LOSS_ALERT", eval_loss_limit(stock, options.loss_alert_threshold)),
            )
            for alert_type, result in checks:
                if not result.triggered:
                    continue
                logger.warning("%s alert: %s", alert_type, result.details)
                events.append(AlertEvent(
                    symbol=stock.symbol,
                    alert_type=alert_type,
                    message=result.details,
                    value=result.current_value,
                    urgency="high" if alert_type == "LOSS_ALERT" else "medium",
                ))
                await self.notifier.send_portfolio_alert(stock, alert_type, options.email)

        logger.info(
            "Portfolio Total: $%.2f | P/L: %+.2f%%",
            summary.total_current_value, summary.total_profit_percent,
        )
        return events

    async def check_stock(self, state: WatchState) -> List[AlertEvent]:
        """
        One single-stock watch tick.

        The first tick measures from the previous close. Once a move reaches
        the threshold the reference price is reset to the current price, so
        the same move cannot fire again.
        """
        quote = await self.stock_tools.get_stock_price(state.symbol)
        indicators = await self.stock_tools.get_technical_indicators(state.symbol)
        events: List[AlertEvent] = []

        signal = eval_strong_signal(indicators)
        if signal.triggered:
            events.append(AlertEvent(
                symbol=state.symbol,
                alert_type="STRONG_SIGNAL",
                message=signal.details,
                value=signal.current_value,
                urgency="high",
            ))
            await self.notifier.send_technical_alert(indicators, state.email)

        if state.reference_price is None:
            state.reference_price = quote.previous_close or quote.price

        move = eval_reference_move(quote.price, state.reference_price, state.threshold_percent)
        if move.triggered:
            events.append(AlertEvent(
                symbol=state.symbol,
                alert_type="PRICE_MOVE",
                message=f"{state.symbol} {move.details}",
                value=move.current_value,
            ))
            await self.notifier.send_price_alert(quote, state.email)
            state.reference_price = quote.price

        return events

    async def monitor_stock(self, symbol: str, breakout_price: Optional[float] = None) -> List[AlertEvent]:
        """On-demand check: AI strong buy, resistance breakout, volume spike."""
        symbol = normalize_symbol(symbol)
        quote = await self.stock_tools.get_stock_price(symbol)
        indicators = await self.stock_tools.get_technical_indicators(symbol)
        events: List[AlertEvent] = []

        if self.ai_engine is not None:
            score = await self.ai_engine.score(symbol)
            result = eval_ai_signal(score)
            if result.triggered:
                events.append(AlertEvent(
                    symbol=symbol, alert_type="AI_SIGNAL", message=f"🚀 {result.details}",
                    value=result.current_value, urgency="high",
                ))

        result = eval_price_breakout(quote.price, breakout_price)
        if result.triggered:
            events.append(AlertEvent(
                symbol=symbol, alert_type="PRICE_BREAKOUT", message=f"📈 {symbol} {result.details}",
                value=result.current_value,
            ))

        result = eval_volume_spike(indicators.volume_ratio)
        if result.triggered:
            events.append(AlertEvent(
                symbol=symbol, alert_type="VOLUME_SPIKE",
                message=f"💹 Unusual volume detected for {symbol}: {result.details}",
                value=result.current_value,
            ))

        return events

    async def send_daily_report(self, recipient: Optional[str] = None) -> bool:
        if self.analyzer is None:
            raise RuntimeError("Portfolio analyzer is not configured")
        report = await self.analyzer.generate_daily_report()
        return await self.notifier.send_daily_report(report, recipient)

    async def send_market_overview(self, recipient: Optional[str] = None) -> bool:
        overview = await self.stock_tools.get_nasdaq100_overview()
        return await self.notifier.send_market_overview(overview, recipient)

    async def send_portfolio_recommendation(self, recommendation, recipient: Optional[str] = None) -> bool:
        return await self.notifier.send_portfolio_recommendation(recommendation.to_dict(), recipient)
