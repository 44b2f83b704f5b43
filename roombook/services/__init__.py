"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import BookingService, RecordStoreProtocol
from .rate_limiter import RateLimiter

__all__ = ["BookingService", "RateLimiter", "RecordStoreProtocol"]
