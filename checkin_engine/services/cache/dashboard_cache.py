"""
In-process dashboard cache.

Client dashboards are cached briefly under "dashboard:{clientId}"; a new
check-in invalidates the entry so the next read reflects the submission.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CachedDashboard:
    """Cached dashboard payload with expiration."""
    data: Any
    cached_at: float


class DashboardCache:
    """
    TTL cache for client dashboard payloads.
    """

    def __init__(self, cache_ttl: int = 60):
        """
        Initialize DashboardCache.

        Args:
            cache_ttl: Cache time-to-live in seconds (default 1 minute)
        """
        self._cache: Dict[str, CachedDashboard] = {}
        self._cache_ttl = cache_ttl

    @staticmethod
    def cache_key(client_id: str) -> str:
        return f"dashboard:{client_id}"

    def _is_cache_valid(self, cached: CachedDashboard) -> bool:
        return (time.time() - cached.cached_at) < self._cache_ttl

    def get(self, client_id: str) -> Optional[Any]:
        key = self.cache_key(client_id)
        cached = self._cache.get(key)
        if cached is None:
            return None
        if not self._is_cache_valid(cached):
            del self._cache[key]
            return None
        logger.debug(f"Cache hit for {key}")
        return cached.data

    def set(self, client_id: str, data: Any) -> None:
        self._cache[self.cache_key(client_id)] = CachedDashboard(data=data, cached_at=time.time())

    def clear_dashboard_cache(self, client_id: str) -> bool:
        """
        Drop the cached dashboard for a client.

        Returns:
            True if an entry was removed
        """
        removed = self._cache.pop(self.cache_key(client_id), None) is not None
        logger.debug(f"Cleared dashboard cache for client {client_id} (entry present: {removed})")
        return removed
