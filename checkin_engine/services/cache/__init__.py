"""Cache services."""

from checkin_engine.services.cache.dashboard_cache import DashboardCache

__all__ = ["DashboardCache"]
