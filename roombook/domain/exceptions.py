"""
Domain-specific exception hierarchy for the room booking application.

Each error carries the HTTP status an API layer should answer with.
"""


class RoomBookingError(Exception):
    """Base class for all application-level errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(RoomBookingError):
    """Raised when caller input is malformed or violates booking policy."""

    status_code = 400

    def __init__(self, message: str, reason: str = "invalid_format"):
        super().__init__(message)
        self.reason = reason


class NotFoundError(RoomBookingError):
    """Raised when a referenced room or booking does not exist."""

    status_code = 404


class AuthorizationError(RoomBookingError):
    """Raised when a user acts on a booking they do not own."""

    status_code = 403


class ConflictError(RoomBookingError):
    """Raised when a booking would overlap an existing confirmed booking."""

    status_code = 409


class RateLimitError(RoomBookingError):
    """Raised when an identifier exceeded its request budget."""

    status_code = 429


class RecordStoreError(RoomBookingError):
    """Raised when booking data cannot be loaded or parsed."""
