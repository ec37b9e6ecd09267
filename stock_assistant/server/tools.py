"""Tool catalogue and dispatcher shared by the MCP server and the HTTP API."""

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..alerts.dispatcher import AlertDispatcher, MonitorOptions
from ..analytics.backtest import BacktestingEngine
from ..analytics.optimizer import RISK_TOLERANCES, PortfolioOptimizer
from ..analytics.portfolio_analyzer import PortfolioDailyAnalyzer
from ..analytics.scoring import AIScoreEngine
from ..config import VALID_PERIODS, Config
from ..jobs.monitors import MonitorRegistry
from ..services.stock_tools import StockTools
from ..storage.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


@dataclass
class ToolResult:
    text: str
    is_error: bool = False


def _schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


SYMBOL = {"type": "string", "description": "Stock symbol (e.g., AAPL, MSFT, NVDA)"}
EMAIL = {"type": "string", "description": "Recipient email (defaults to NOTIFICATION_EMAIL)"}

TOOLS: List[ToolSpec] = [
    ToolSpec(
        "get_stock_price",
        "Get current stock price and basic info for a NASDAQ-100 symbol",
        _schema({"symbol": SYMBOL}, ["symbol"]),
    ),
    ToolSpec(
        "get_multiple_stocks",
        "Get prices for multiple stocks at once",
        _schema(
            {"symbols": {"type": "array", "items": {"type": "string"}, "description": "Array of stock symbols"}},
            ["symbols"],
        ),
    ),
    ToolSpec(
        "get_historical_data",
        "Get historical price data for a stock",
        _schema(
            {
                "symbol": SYMBOL,
                "period": {
                    "type": "string",
                    "enum": list(VALID_PERIODS),
                    "description": "Time period for historical data",
                },
            },
            ["symbol"],
        ),
    ),
    ToolSpec(
        "get_technical_indicators",
        "Get technical indicators (MA, RSI, volume ratio, signal) for a stock",
        _schema({"symbol": SYMBOL}, ["symbol"]),
    ),
    ToolSpec("get_nasdaq100_overview", "Get NASDAQ-100 market overview with top gainers and losers"),
    ToolSpec(
        "get_financial_info",
        "Get financial metrics and valuation for a stock",
        _schema({"symbol": SYMBOL}, ["symbol"]),
    ),
    ToolSpec(
        "get_ai_score",
        "Weighted technical/fundamental/sentiment/momentum/risk score with recommendation",
        _schema({"symbol": SYMBOL}, ["symbol"]),
    ),
    ToolSpec(
        "get_portfolio_recommendation",
        "Suggest a sector-diversified portfolio for a budget and risk profile, optionally by email",
        _schema(
            {
                "budget": {"type": "number", "description": "Amount to invest in USD"},
                "risk_tolerance": {"type": "string", "enum": RISK_TOLERANCES, "description": "Default moderate"},
                "send_email": {"type": "boolean", "description": "Email the recommendation"},
                "email": EMAIL,
            },
            ["budget"],
        ),
    ),
    ToolSpec("get_market_insights", "Top-scored NASDAQ-100 names, market sentiment and sector rotation"),
    ToolSpec(
        "check_stock_alerts",
        "Check a stock for AI strong-buy, resistance breakout and volume spike alerts",
        _schema(
            {"symbol": SYMBOL, "breakout_price": {"type": "number", "description": "Resistance level"}},
            ["symbol"],
        ),
    ),
    ToolSpec(
        "backtest_strategy",
        "Backtest the score-driven buy/sell strategy over past daily prices",
        _schema(
            {"symbol": SYMBOL, "period": {"type": "string", "enum": list(VALID_PERIODS)}},
            ["symbol"],
        ),
    ),
    ToolSpec(
        "portfolio_add_stock",
        "Add shares to the portfolio (merges at weighted-average cost)",
        _schema(
            {
                "symbol": SYMBOL,
                "shares": {"type": "number", "description": "Number of shares"},
                "purchase_price": {"type": "number", "description": "Price paid per share"},
            },
            ["symbol", "shares", "purchase_price"],
        ),
    ),
    ToolSpec(
        "portfolio_remove_stock",
        "Remove a stock from the portfolio",
        _schema({"symbol": SYMBOL}, ["symbol"]),
    ),
    ToolSpec("portfolio_view", "List portfolio holdings"),
    ToolSpec("portfolio_summary", "Value the portfolio at current prices"),
    ToolSpec("portfolio_clear", "Remove every holding from the portfolio"),
    ToolSpec(
        "portfolio_daily_report",
        "Full daily portfolio analysis: scores, sectors, rebalancing, top picks and action items",
    ),
    ToolSpec("send_daily_report_email", "Generate the daily portfolio report and email it", _schema({"email": EMAIL})),
    ToolSpec("send_market_overview_email", "Email the NASDAQ-100 market overview", _schema({"email": EMAIL})),
    ToolSpec(
        "start_portfolio_monitoring",
        "Periodically check the portfolio and email price, profit and loss alerts",
        _schema({
            "check_interval_minutes": {"type": "number", "description": "Minutes between checks (default 5)"},
            "price_alert_threshold": {"type": "number", "description": "Daily move % (default 5)"},
            "profit_alert_threshold": {"type": "number", "description": "Profit % target (default 10)"},
            "loss_alert_threshold": {"type": "number", "description": "Loss % limit, negative (default -5)"},
            "email": EMAIL,
        }),
    ),
    ToolSpec(
        "stop_monitoring",
        "Stop one monitor by id, or every monitor when no id is given",
        _schema({"monitor_id": {"type": "string", "description": "Id returned when the monitor started"}}),
    ),
    ToolSpec(
        "watch_stock",
        "Watch a single stock for strong signals and threshold-sized price moves",
        _schema(
            {
                "symbol": SYMBOL,
                "threshold_percent": {"type": "number", "description": "Move % from reference (default 5)"},
                "check_interval_minutes": {"type": "number", "description": "Minutes between checks (default 5)"},
                "email": EMAIL,
            },
            ["symbol"],
        ),
    ),
    ToolSpec(
        "schedule_daily_report",
        "Email the daily report (or market overview) every day at a local time",
        _schema({
            "hour": {"type": "integer", "minimum": 0, "maximum": 23},
            "minute": {"type": "integer", "minimum": 0, "maximum": 59},
            "report_type": {"type": "string", "enum": ["daily_report", "market_overview"]},
            "email": EMAIL,
        }),
    ),
    ToolSpec("list_monitors", "List running monitors"),
]

TOOL_NAMES = [tool.name for tool in TOOLS]


def _require(args: Dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value is None or value == "":
        raise ValueError(f"Missing required argument: {key}")
    return value


def _optional_float(args: Dict[str, Any], key: str) -> Optional[float]:
    value = args.get(key)
    return float(value) if value is not None else None


class ToolDispatcher:
    """Maps tool names to handlers; every failure becomes an error result."""

    def __init__(
        self,
        config: Config,
        stock_tools: StockTools,
        ai_engine: AIScoreEngine,
        backtester: BacktestingEngine,
        portfolio_store: PortfolioStore,
        analyzer: PortfolioDailyAnalyzer,
        alerts: AlertDispatcher,
        monitors: MonitorRegistry,
        optimizer: Optional[PortfolioOptimizer] = None,
    ):
        self.config = config
        self.stock_tools = stock_tools
        self.ai_engine = ai_engine
        self.backtester = backtester
        self.store = portfolio_store
        self.analyzer = analyzer
        self.alerts = alerts
        self.monitors = monitors
        self.optimizer = optimizer or PortfolioOptimizer(stock_tools, ai_engine)

        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            name: getattr(self, f"_tool_{name}") for name in TOOL_NAMES
        }

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult(text=f"Error: Unknown tool: {name}", is_error=True)

        try:
            result = await handler(arguments or {})
        except Exception as exc:
            logger.error("Error in %s: %s", name, exc)
            return ToolResult(text=f"Error: {exc}", is_error=True)

        return ToolResult(text=json.dumps(result, indent=2, ensure_ascii=False, default=str))

    # -- market data -------------------------------------------------------

    async def _tool_get_stock_price(self, args):
        return (await self.stock_tools.get_stock_price(_require(args, "symbol"))).to_dict()

    async def _tool_get_multiple_stocks(self, args):
        symbols = _require(args, "symbols")
        if isinstance(symbols, str):
            symbols = [s for s in symbols.split(",") if s.strip()]
        quotes = await self.stock_tools.get_multiple_stock_prices(list(symbols))
        return [q.to_dict() for q in quotes]

    async def _tool_get_historical_data(self, args):
        return await self.stock_tools.get_historical_data(_require(args, "symbol"), args.get("period", "1mo"))

    async def _tool_get_technical_indicators(self, args):
        return (await self.stock_tools.get_technical_indicators(_require(args, "symbol"))).to_dict()

    async def _tool_get_nasdaq100_overview(self, args):
        return (await self.stock_tools.get_nasdaq100_overview()).to_dict()

    async def _tool_get_financial_info(self, args):
        return (await self.stock_tools.get_financial_info(_require(args, "symbol"))).to_dict()

    # -- analysis ----------------------------------------------------------

    async def _tool_get_ai_score(self, args):
        return (await self.ai_engine.score(_require(args, "symbol"))).to_dict()

    async def _tool_get_portfolio_recommendation(self, args):
        budget = float(_require(args, "budget"))
        recommendation = await self.optimizer.recommend_portfolio(budget, args.get("risk_tolerance") or "moderate")
        result = recommendation.to_dict()

        if args.get("send_email"):
            recipient = args.get("email") or self.config.notification_email
            sent = await self.alerts.send_portfolio_recommendation(recommendation, recipient)
            result["email"] = {
                "success": sent,
                "message": f"Recommendation sent to {recipient}" if sent else "Failed to send recommendation",
            }
        return result

    async def _tool_get_market_insights(self, args):
        return (await self.optimizer.get_market_insights()).to_dict()

    async def _tool_check_stock_alerts(self, args):
        symbol = _require(args, "symbol")
        events = await self.alerts.monitor_stock(symbol, _optional_float(args, "breakout_price"))
        return {"symbol": symbol.upper(), "alerts": [e.to_dict() for e in events]}

    async def _tool_backtest_strategy(self, args):
        period = args.get("period") or "1y"
        if period not in VALID_PERIODS:
            raise ValueError(f"Invalid period: {period}")
        return (await self.backtester.backtest(_require(args, "symbol"), period)).to_dict()

    # -- portfolio ---------------------------------------------------------

    async def _tool_portfolio_add_stock(self, args):
        symbol = _require(args, "symbol")
        shares = float(_require(args, "shares"))
        price = float(_require(args, "purchase_price"))
        holdings = self.store.add_stock(symbol, shares, price)
        return {
            "success": True,
            "message": f"Added {shares:g} shares of {symbol.upper()} at ${price:.2f}",
            "portfolio": [asdict(h) for h in holdings],
        }

    async def _tool_portfolio_remove_stock(self, args):
        symbol = _require(args, "symbol")
        holdings = self.store.remove_stock(symbol)
        return {
            "success": True,
            "message": f"Removed {symbol.upper()} from portfolio",
            "portfolio": [asdict(h) for h in holdings],
        }

    async def _tool_portfolio_view(self, args):
        holdings = self.store.get_portfolio()
        return {"count": len(holdings), "stocks": [asdict(h) for h in holdings]}

    async def _tool_portfolio_summary(self, args):
        return (await self.store.get_summary(self.stock_tools)).to_dict()

    async def _tool_portfolio_clear(self, args):
        return self.store.clear()

    async def _tool_portfolio_daily_report(self, args):
        return (await self.analyzer.generate_daily_report()).to_dict()

    # -- email -------------------------------------------------------------

    async def _tool_send_daily_report_email(self, args):
        recipient = args.get("email") or self.config.notification_email
        sent = await self.alerts.send_daily_report(recipient)
        return {
            "success": sent,
            "message": f"Daily report sent to {recipient}" if sent else "Failed to send daily report",
        }

    async def _tool_send_market_overview_email(self, args):
        recipient = args.get("email") or self.config.notification_email
        sent = await self.alerts.send_market_overview(recipient)
        return {
            "success": sent,
            "message": f"Market overview sent to {recipient}" if sent else "Failed to send market overview",
        }

    # -- monitors ----------------------------------------------------------

    async def _tool_start_portfolio_monitoring(self, args):
        options = MonitorOptions.from_config(
            self.config,
            check_interval_minutes=_optional_float(args, "check_interval_minutes"),
            price_alert_threshold=_optional_float(args, "price_alert_threshold"),
            profit_alert_threshold=_optional_float(args, "profit_alert_threshold"),
            loss_alert_threshold=_optional_float(args, "loss_alert_threshold"),
            email=args.get("email") or None,
        )
        handle = await self.monitors.start_portfolio_monitor(options)
        return {"success": True, "monitor": handle.to_dict(), "options": options.to_dict()}

    async def _tool_stop_monitoring(self, args):
        monitor_id = args.get("monitor_id")
        if not monitor_id:
            stopped = await self.monitors.stop_all()
            return {"success": stopped > 0, "message": f"Stopped {stopped} monitor(s)"}

        stopped = await self.monitors.stop(monitor_id)
        return {
            "success": stopped,
            "message": f"Monitor {monitor_id} stopped" if stopped else f"No active monitor {monitor_id}",
        }

    async def _tool_watch_stock(self, args):
        handle = await self.monitors.start_stock_watch(
            _require(args, "symbol"),
            threshold_percent=_optional_float(args, "threshold_percent") or self.config.price_alert_threshold,
            interval_minutes=_optional_float(args, "check_interval_minutes") or self.config.monitor_interval_minutes,
            email=args.get("email") or self.config.notification_email,
        )
        return {"success": True, "monitor": handle.to_dict()}

    async def _tool_schedule_daily_report(self, args):
        hour = args.get("hour")
        minute = args.get("minute")
        handle = await self.monitors.start_daily_schedule(
            hour=int(hour) if hour is not None else self.config.daily_report_hour,
            minute=int(minute) if minute is not None else self.config.daily_report_minute,
            recipient=args.get("email") or self.config.notification_email,
            report_type=args.get("report_type") or "daily_report",
        )
        return {"success": True, "monitor": handle.to_dict()}

    async def _tool_list_monitors(self, args):
        return {"monitors": [h.to_dict() for h in self.monitors.list()]}
