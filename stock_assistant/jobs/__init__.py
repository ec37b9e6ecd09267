"""Background monitor jobs."""

from .monitors import DailyTrigger, MonitorHandle, MonitorRegistry

__all__ = ["DailyTrigger", "MonitorHandle", "MonitorRegistry"]
