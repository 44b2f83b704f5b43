"""
Adapters layer - Record store stand-in and calendar export.
"""

from .ics_exporter import generate_ics_feed, generate_ics_for_booking
from .memory_store import InMemoryRecordStore, parse_room

__all__ = ["InMemoryRecordStore", "generate_ics_feed", "generate_ics_for_booking", "parse_room"]
