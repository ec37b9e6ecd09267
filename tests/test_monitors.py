"""Tests for the background monitor registry."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from stock_assistant.alerts.dispatcher import MonitorOptions
from stock_assistant.domain.models import Holding
from stock_assistant.jobs.monitors import DailyTrigger, MonitorRegistry


def make_registry(holdings=(), clock=datetime.now, daily_check_seconds=60.0):
    dispatcher = MagicMock()
    dispatcher.check_portfolio = AsyncMock(return_value=[])
    dispatcher.check_stock = AsyncMock(return_value=[])
    dispatcher.send_daily_report = AsyncMock(return_value=True)
    dispatcher.send_market_overview = AsyncMock(return_value=True)
    store = MagicMock()
    store.load.return_value = list(holdings)
    registry = MonitorRegistry(dispatcher, store, clock=clock, daily_check_seconds=daily_check_seconds)
    return registry, dispatcher


class TestDailyTrigger:
    def test_started_before_slot_fires_today(self):
        trigger = DailyTrigger(9, 0, now=datetime(2024, 3, 1, 8, 30))
        assert not trigger.due(datetime(2024, 3, 1, 8, 59))
        assert trigger.due(datetime(2024, 3, 1, 9, 0))

    def test_fires_once_per_day(self):
        trigger = DailyTrigger(9, 0, now=datetime(2024, 3, 1, 8, 0))
        now = datetime(2024, 3, 1, 9, 5)
        assert trigger.due(now)
        trigger.mark_fired(now)
        assert not trigger.due(datetime(2024, 3, 1, 18, 0))
        assert trigger.due(datetime(2024, 3, 2, 9, 0))

    def test_started_after_slot_waits_for_tomorrow(self):
        trigger = DailyTrigger(9, 0, now=datetime(2024, 3, 1, 10, 0))
        assert not trigger.due(datetime(2024, 3, 1, 10, 1))
        assert not trigger.due(datetime(2024, 3, 2, 8, 59))
        assert trigger.due(datetime(2024, 3, 2, 9, 0))


class TestMonitorRegistry:
    def test_empty_portfolio_is_refused(self):
        registry, _ = make_registry()

        async def scenario():
            with pytest.raises(ValueError, match="Portfolio is empty"):
                await registry.start_portfolio_monitor(MonitorOptions())

        asyncio.run(scenario())
        assert registry.list() == []

    def test_portfolio_monitor_ticks_until_stopped(self):
        registry, dispatcher = make_registry(holdings=[Holding("AAPL", 10, 100.0)])
        options = MonitorOptions(check_interval_minutes=0.0001)

        async def scenario():
            handle = await registry.start_portfolio_monitor(options)
            assert handle.kind == "portfolio"
            assert "AAPL" in handle.description
            await asyncio.sleep(0.05)
            assert await registry.stop(handle.id) is True

        asyncio.run(scenario())
        assert dispatcher.check_portfolio.await_count >= 2
        dispatcher.check_portfolio.assert_awaited_with(options)
        assert registry.list() == []

    def test_tick_errors_do_not_stop_the_loop(self):
        registry, dispatcher = make_registry()
        dispatcher.check_stock = AsyncMock(side_effect=RuntimeError("network down"))

        async def scenario():
            handle = await registry.start_stock_watch("tsla", interval_minutes=0.0001)
            await asyncio.sleep(0.05)
            await registry.stop(handle.id)

        asyncio.run(scenario())
        assert dispatcher.check_stock.await_count >= 2
        state = dispatcher.check_stock.await_args.args[0]
        assert state.symbol == "TSLA"

    def test_stop_unknown_id(self):
        registry, _ = make_registry()
        assert asyncio.run(registry.stop("nope")) is False

    def test_stop_all(self):
        registry, _ = make_registry()

        async def scenario():
            await registry.start_stock_watch("AAPL", interval_minutes=1)
            await registry.start_stock_watch("MSFT", interval_minutes=1)
            assert len(registry.list()) == 2
            return await registry.stop_all()

        assert asyncio.run(scenario()) == 2
        assert registry.list() == []

    def test_daily_schedule_sends_once(self):
        times = iter([datetime(2024, 3, 1, 8, 59)] + [datetime(2024, 3, 1, 9, 1)] * 10000)
        registry, dispatcher = make_registry(clock=lambda: next(times), daily_check_seconds=0.001)

        async def scenario():
            handle = await registry.start_daily_schedule(9, 0, "me@example.com", "market_overview")
            await asyncio.sleep(0.05)
            await registry.stop(handle.id)

        asyncio.run(scenario())
        dispatcher.send_market_overview.assert_awaited_once_with("me@example.com")
        dispatcher.send_daily_report.assert_not_awaited()

    @pytest.mark.parametrize("kwargs", [
        {"hour": 24},
        {"minute": 60},
        {"report_type": "weekly"},
    ])
    def test_daily_schedule_validation(self, kwargs):
        registry, _ = make_registry()
        with pytest.raises(ValueError):
            asyncio.run(registry.start_daily_schedule(**kwargs))
