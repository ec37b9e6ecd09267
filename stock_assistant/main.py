"""Main entry point for the NASDAQ-100 stock MCP server."""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import httpx
from dotenv import load_dotenv

from .alerts.dispatcher import AlertDispatcher
from .analytics.backtest import BacktestingEngine
from .analytics.optimizer import PortfolioOptimizer
from .analytics.portfolio_analyzer import PortfolioDailyAnalyzer
from .analytics.scoring import AIScoreEngine
from .config import Config
from .jobs.monitors import MonitorRegistry
from .notifications.mailer import EmailNotifier
from .providers.alphavantage import NewsSentimentProvider
from .providers.market import MarketDataProvider
from .server.mcp_app import create_server, run_stdio
from .server.tools import ToolDispatcher
from .services.stock_tools import StockTools
from .storage.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    # stdout is the MCP transport
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("yfinance").setLevel(logging.WARNING)


def build_tool_dispatcher(config: Config, http_client: Optional[httpx.AsyncClient] = None) -> ToolDispatcher:
    """Wire every component from one configuration."""
    semaphore = asyncio.Semaphore(config.max_concurrent_requests)

    market_provider = MarketDataProvider(config=config, semaphore=semaphore)
    stock_tools = StockTools(market_provider)
    sentiment_provider = NewsSentimentProvider(config=config, http_client=http_client)
    ai_engine = AIScoreEngine(stock_tools, sentiment_provider if sentiment_provider.enabled else None)

    store = PortfolioStore(config.portfolio_file)
    store.load()

    analyzer = PortfolioDailyAnalyzer(store, stock_tools)
    notifier = EmailNotifier(config)
    alerts = AlertDispatcher(store, stock_tools, notifier, ai_engine=ai_engine, analyzer=analyzer)

    return ToolDispatcher(
        config=config,
        stock_tools=stock_tools,
        ai_engine=ai_engine,
        backtester=BacktestingEngine(market_provider),
        portfolio_store=store,
        analyzer=analyzer,
        alerts=alerts,
        monitors=MonitorRegistry(alerts, store),
        optimizer=PortfolioOptimizer(stock_tools, ai_engine),
    )


async def main() -> None:
    """Main application entry point."""
    load_dotenv()
    config = Config.from_env()
    configure_logging(config.log_level)

    http_client = httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout))
    dispatcher = build_tool_dispatcher(config, http_client)

    logger.info("Starting server at %s", datetime.now(timezone.utc).isoformat())
    logger.info(
        "Configuration: portfolio=%s, mail=%s, max_concurrent_requests=%d",
        config.portfolio_file, "on" if config.mail_configured else "off", config.max_concurrent_requests,
    )
    if not config.mail_configured:
        logger.warning("EMAIL_USER / EMAIL_APP_PASSWORD not set - email tools will report failure")

    try:
        await run_stdio(create_server(dispatcher))
    finally:
        stopped = await dispatcher.monitors.stop_all()
        if stopped:
            logger.info("Stopped %d monitor(s)", stopped)
        await http_client.aclose()
        logger.info("Shutdown complete")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except Exception as exc:
        logger.error("Server error: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
