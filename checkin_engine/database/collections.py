"""
Check-in engine collections.

Collection names and index setup for the engine's collections.
"""

import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

logger = logging.getLogger(__name__)

ASSIGNMENTS = "check_in_assignments"
RESPONSES = "formResponses"
NOTIFICATIONS = "notifications"
CLIENTS = "clients"

# Name of the index that enforces one assignment per recurring slot
RECURRING_SLOT_INDEX = "uniq_client_form_week"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes the submission engine relies on.

    The unique (clientId, formId, recurringWeek) index is what arbitrates
    concurrent materialization of the same virtual week.
    """
    assignments = db[ASSIGNMENTS]
    await assignments.create_index(
        [("clientId", ASCENDING), ("formId", ASCENDING), ("recurringWeek", ASCENDING)],
        name=RECURRING_SLOT_INDEX,
        unique=True,
        partialFilterExpression={"recurringWeek": {"$type": "number"}},
    )
    await assignments.create_index([("id", ASCENDING)], name="external_id", sparse=True)
    await db[RESPONSES].create_index([("assignmentId", ASCENDING)], name="by_assignment")
    logger.info("Check-in indexes ensured")


def key_filter(document_id: str) -> dict:
    """Primary-key filter; ids migrated from other stores may be plain strings."""
    if ObjectId.is_valid(document_id):
        return {"_id": ObjectId(document_id)}
    return {"_id": document_id}
