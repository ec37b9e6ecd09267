"""Alert rules and dispatch."""

from .dispatcher import AlertDispatcher, AlertEvent, MonitorOptions, WatchState
from .rules import RuleResult

__all__ = ["AlertDispatcher", "AlertEvent", "MonitorOptions", "RuleResult", "WatchState"]
