"""
Errors raised by the attendance engine
"""
from contextlib import contextmanager

from django.db import DatabaseError


class AttendanceError(Exception):
    """Base class for attendance engine errors."""


class ValidationError(AttendanceError):
    """Malformed schedule input."""


class NotFoundError(AttendanceError):
    """Unknown barcode, session key or record."""


class StorageError(AttendanceError):
    """The underlying database call failed."""


class OutOfScheduleError(AttendanceError):
    """
    Check-in attempted while no session is running.
    Carries the next upcoming session (or None) so the kiosk can show it.
    """

    def __init__(self, next_session=None):
        self.next_session = next_session
        if next_session is None:
            message = "Check-in not allowed outside meeting sessions."
        else:
            message = (
                f"Check-in not allowed. Next session: {next_session.day_name} "
                f"{next_session.start_time:%H:%M}-{next_session.end_time:%H:%M}"
            )
        super().__init__(message)

    def as_dict(self):
        return {
            "error": str(self),
            "nextSession": self.next_session.as_dict() if self.next_session else None,
        }


@contextmanager
def storage_errors(action):
    """Re-raise database failures inside the block as StorageError."""
    try:
        yield
    except DatabaseError as exc:
        raise StorageError(f"{action} failed: {exc}") from exc
