"""
Scan classification for the kiosk.
"""
from dataclasses import dataclass
from typing import Optional

from attendance_app.models import AttendanceRecord, MeetingSession
from attendance_app.services.evaluator import minutes_until_end, within_session

CHECK_IN = "check-in"
CHECK_OUT = "check-out"

DEFAULT_REVIEW_WINDOW_MINUTES = 5


@dataclass(frozen=True)
class Classification:
    direction: str
    flagged: bool = False
    session: Optional[MeetingSession] = None
    rejected: bool = False

    @property
    def is_checkin(self):
        return self.direction == CHECK_IN


def next_direction(last_record: Optional[AttendanceRecord]) -> str:
    # Alternation comes from the latest stored record
    if last_record is None or not last_record.is_checkin:
        return CHECK_IN
    return CHECK_OUT


def classify(last_record, sessions, now, review_window=DEFAULT_REVIEW_WINDOW_MINUTES) -> Classification:
    """
    Decide what a scan at ``now`` means for a member whose latest record is
    ``last_record``.

    Check-outs are always allowed. Check-ins need a running session and are
    flagged when they happen within ``review_window`` minutes of its end
    (end inclusive). A check-in with no running session comes back with
    ``rejected=True``; nothing should be written for it.
    """
    direction = next_direction(last_record)
    if direction == CHECK_OUT:
        return Classification(direction=CHECK_OUT)

    session = within_session(sessions, now)
    if session is None:
        return Classification(direction=CHECK_IN, rejected=True)

    remaining = minutes_until_end(session, now)
    flagged = 0 <= remaining <= review_window
    return Classification(direction=CHECK_IN, flagged=flagged, session=session)
