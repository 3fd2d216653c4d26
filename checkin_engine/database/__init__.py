"""Database helpers for the check-in engine."""

from checkin_engine.database.collections import (
    ASSIGNMENTS,
    RESPONSES,
    NOTIFICATIONS,
    CLIENTS,
    RECURRING_SLOT_INDEX,
    ensure_indexes,
    key_filter,
)
