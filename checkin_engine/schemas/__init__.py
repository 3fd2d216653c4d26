"""
Check-in engine schemas.

Pydantic models for request/response validation.
"""

from checkin_engine.schemas.checkin import *
