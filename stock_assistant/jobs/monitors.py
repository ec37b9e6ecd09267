"""Background monitors: portfolio checks, single-stock watches and the daily email."""

import asyncio
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..alerts.dispatcher import AlertDispatcher, MonitorOptions, WatchState
from ..domain.models import normalize_symbol, utc_now_iso

logger = logging.getLogger(__name__)

DAILY_CHECK_SECONDS = 60.0
STOP_TIMEOUT_SECONDS = 30.0


@dataclass
class MonitorHandle:
    """Opaque reference to a running monitor."""
    id: str
    kind: str  # portfolio | stock_watch | daily_report | market_overview
    description: str
    started_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _Monitor:
    handle: MonitorHandle
    stop_event: asyncio.Event
    task: asyncio.Task


class DailyTrigger:
    """Fires at most once per calendar day, after hour:minute local time."""

    def __init__(self, hour: int, minute: int, now: Optional[datetime] = None):
        self.hour = hour
        self.minute = minute
        self.last_fired: Optional[date] = None
        now = now or datetime.now()
        # Started after today's slot: wait for tomorrow
        if self._past_slot(now):
            self.last_fired = now.date()

    def _past_slot(self, now: datetime) -> bool:
        return (now.hour, now.minute) >= (self.hour, self.minute)

    def due(self, now: datetime) -> bool:
        if self.last_fired == now.date():
            return False
        return self._past_slot(now)

    def mark_fired(self, now: datetime) -> None:
        self.last_fired = now.date()


class MonitorRegistry:
    """
    Owns every running monitor.

    Each monitor is an asyncio task that checks its stop event at the top of
    each tick, runs the tick to completion, then sleeps until the interval
    elapses or the stop event is set. Tick errors are logged and the loop
    continues.
    """

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        portfolio_store,
        clock: Callable[[], datetime] = datetime.now,
        daily_check_seconds: float = DAILY_CHECK_SECONDS,
    ):
        self.dispatcher = dispatcher
        self.store = portfolio_store
        self.clock = clock
        self.daily_check_seconds = daily_check_seconds
        self._monitors: Dict[str, _Monitor] = {}

    def _register(
        self,
        kind: str,
        description: str,
        tick: Callable[[], Awaitable[Any]],
        interval_seconds: float,
    ) -> MonitorHandle:
        handle = MonitorHandle(id=f"{kind}-{uuid.uuid4().hex[:8]}", kind=kind, description=description)
        stop_event = asyncio.Event()
        task = asyncio.create_task(self._run(handle, stop_event, tick, interval_seconds))
        self._monitors[handle.id] = _Monitor(handle=handle, stop_event=stop_event, task=task)
        logger.info("Started monitor %s: %s", handle.id, description)
        return handle

    async def _run(
        self,
        handle: MonitorHandle,
        stop_event: asyncio.Event,
        tick: Callable[[], Awaitable[Any]],
        interval_seconds: float,
    ) -> None:
        while not stop_event.is_set():
            try:
                await tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Monitor %s tick error: %s", handle.id, e)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Monitor %s stopped", handle.id)

    async def start_portfolio_monitor(self, options: MonitorOptions) -> MonitorHandle:
        """Start periodic portfolio checks; an empty portfolio is refused."""
        holdings = self.store.load()
        if not holdings:
            raise ValueError("Portfolio is empty. Add stocks first!")

        logger.info(
            "Starting portfolio monitoring: price ±%s%%, profit +%s%%, loss %s%%, every %s min",
            options.price_alert_threshold, options.profit_alert_threshold,
            options.loss_alert_threshold, options.check_interval_minutes,
        )
        symbols = ", ".join(h.symbol for h in holdings)
        return self._register(
            "portfolio",
            f"Monitoring {len(holdings)} stocks ({symbols}) every {options.check_interval_minutes} min",
            lambda: self.dispatcher.check_portfolio(options),
            options.check_interval_minutes * 60,
        )

    async def start_stock_watch(
        self,
        symbol: str,
        threshold_percent: float = 5.0,
        interval_minutes: float = 5.0,
        email: Optional[str] = None,
    ) -> MonitorHandle:
        state = WatchState(symbol=normalize_symbol(symbol), threshold_percent=threshold_percent, email=email)
        return self._register(
            "stock_watch",
            f"Watching {state.symbol} for ±{threshold_percent}% moves every {interval_minutes} min",
            lambda: self.dispatcher.check_stock(state),
            interval_minutes * 60,
        )

    async def start_daily_schedule(
        self,
        hour: int = 9,
        minute: int = 0,
        recipient: Optional[str] = None,
        report_type: str = "daily_report",
    ) -> MonitorHandle:
        """Send the daily report (or just the market overview) once a day."""
        if report_type not in ("daily_report", "market_overview"):
            raise ValueError(f"Unknown report type: {report_type}")
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time {hour}:{minute}")

        trigger = DailyTrigger(hour, minute, self.clock())

        async def tick() -> None:
            now = self.clock()
            if not trigger.due(now):
                return
            trigger.mark_fired(now)
            if report_type == "market_overview":
                sent = await self.dispatcher.send_market_overview(recipient)
            else:
                sent = await self.dispatcher.send_daily_report(recipient)
            logger.info("Scheduled %s sent: %s", report_type, sent)

        return self._register(
            report_type,
            f"Sending {report_type.replace('_', ' ')} daily at {hour:02d}:{minute:02d}",
            tick,
            self.daily_check_seconds,
        )

    async def stop(self, handle_id: str) -> bool:
        """Stop a monitor and wait for it to finish; False if unknown."""
        monitor = self._monitors.pop(handle_id, None)
        if monitor is None:
            return False

        monitor.stop_event.set()
        done, _ = await asyncio.wait({monitor.task}, timeout=STOP_TIMEOUT_SECONDS)
        if not done:
            logger.warning("Monitor %s did not stop in time, cancelling", handle_id)
            monitor.task.cancel()
            await asyncio.gather(monitor.task, return_exceptions=True)
        return True

    async def stop_all(self) -> int:
        ids = list(self._monitors)
        for handle_id in ids:
            await self.stop(handle_id)
        return len(ids)

    def list(self) -> List[MonitorHandle]:
        return [m.handle for m in self._monitors.values()]
