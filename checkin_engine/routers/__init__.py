"""
Check-in engine API routers.
"""

from checkin_engine.routers.checkin import router as checkin_router

__all__ = [
    "checkin_router",
]
