"""
Goal progress trigger.

Asks the goals service to recompute a client's goal progress after a
check-in. The recomputation itself lives outside this engine.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class GoalProgressService:
    """
    Fires the goal-progress recomputation endpoint.
    """

    def __init__(self, track_progress_url: Optional[str] = None, timeout: float = 10.0):
        """
        Initialize GoalProgressService.

        Args:
            track_progress_url: Endpoint accepting {"clientId": ...}; None disables the trigger
            timeout: Request timeout in seconds
        """
        self._url = track_progress_url
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def track_progress(self, client_id: str) -> bool:
        """
        Trigger goal-progress recomputation for a client.

        Returns:
            True if the endpoint accepted the request, False if skipped
        """
        if not self._url:
            logger.debug(f"Goal progress URL not configured; skipping trigger for client {client_id}")
            return False

        async with httpx.AsyncClient() as client:
            response = await client.post(
                self._url,
                json={"clientId": client_id},
                timeout=self._timeout,
            )

        if response.status_code >= 400:
            logger.warning(
                f"Goal progress trigger for client {client_id} returned {response.status_code}"
            )
            return False

        logger.info(f"Triggered goal progress recomputation for client {client_id}")
        return True
