"""
Schedule evaluation: which session is running now, and which one comes next.

Both functions take the already-loaded list of sessions so they can be used
without touching the database. Times are compared at minute resolution.
"""
from typing import Iterable, Optional

from attendance_app.models import MeetingSession

MINUTES_PER_DAY = 24 * 60
DAYS_PER_WEEK = 7


def day_of_week(moment) -> int:
    """Weekday of ``moment`` in stored-schedule numbering (0 = Sunday)."""
    return moment.isoweekday() % DAYS_PER_WEEK


def minute_of_day(value) -> int:
    """Minutes since midnight for a ``time`` or ``datetime``; seconds are dropped."""
    return value.hour * 60 + value.minute


def _active(sessions: Iterable[MeetingSession]):
    return [s for s in sessions if s.is_active]


def within_session(sessions: Iterable[MeetingSession], now) -> Optional[MeetingSession]:
    """
    Return the active session running at ``now``, or None.

    Both bounds are inclusive. If sessions overlap, the lowest session
    number wins.
    """
    today = day_of_week(now)
    current = minute_of_day(now)
    matches = [
        s for s in _active(sessions)
        if s.day_of_week == today
        and minute_of_day(s.start_time) <= current <= minute_of_day(s.end_time)
    ]
    if not matches:
        return None
    return min(matches, key=lambda s: s.session_number)


def next_session(sessions: Iterable[MeetingSession], now) -> Optional[MeetingSession]:
    """
    Return the next session to start after ``now``.

    A session later today wins (earliest start). Otherwise the search moves
    to the following days, wrapping round to the same weekday next week,
    ordered by day distance then session number.
    """
    active = _active(sessions)
    if not active:
        return None

    today = day_of_week(now)
    current = minute_of_day(now)

    later_today = [s for s in active if s.day_of_week == today and minute_of_day(s.start_time) > current]
    if later_today:
        return min(later_today, key=lambda s: (minute_of_day(s.start_time), s.session_number))

    def distance(session):
        # 1..7, so today's sessions count as next week
        return (session.day_of_week - today - 1) % DAYS_PER_WEEK + 1

    return min(active, key=lambda s: (distance(s), s.session_number))


def minutes_until_end(session: MeetingSession, now) -> int:
    return minute_of_day(session.end_time) - minute_of_day(now)
