"""
Database module - Generic async MongoDB connection using Motor.

Usage:
    from common.database import MongoDB

    db = MongoDB()
    await db.connect(uri, database_name)
    assignments = db.db["check_in_assignments"]
"""

from common.database.mongodb import MongoDB

__all__ = ["MongoDB"]
