"""
Check-in engine pipelines.

Business logic orchestration functions.
"""

from checkin_engine.pipelines.submission import *
