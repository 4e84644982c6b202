"""
Persistence for the weekly meeting schedule.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from asgiref.sync import sync_to_async
from django.db import transaction

from attendance_app.exceptions import NotFoundError, ValidationError, storage_errors
from attendance_app.models import MeetingSession
from attendance_app.services.evaluator import DAYS_PER_WEEK, minute_of_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSpec:
    """One validated entry of a bulk schedule replacement."""
    day_of_week: int
    session_number: int
    start_time: object
    end_time: object
    session_name: str

    @property
    def key(self):
        return self.day_of_week, self.session_number


def _parse_time(value, field, index):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Schedule {index}: {field} is required (HH:MM).")
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Schedule {index}: {field} '{value}' is not a valid HH:MM time.")


def _parse_int(value, field, index):
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"Schedule {index}: {field} must be a whole number.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Schedule {index}: {field} must be a whole number.")


def parse_schedules(payload):
    """
    Validate a bulk replacement payload and return a list of SessionSpec.

    Each entry carries dayOfWeek, sessionNumber, startTime, endTime and an
    optional sessionName. Sessions must not run overnight, keys must be unique
    and sessions on the same day must not overlap.
    """
    if not isinstance(payload, list):
        raise ValidationError("Schedules must be an array")

    specs = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValidationError(f"Schedule {index}: entry must be an object.")

        if item.get("dayOfWeek") is None:
            raise ValidationError(f"Schedule {index}: dayOfWeek is required.")
        if item.get("sessionNumber") is None:
            raise ValidationError(f"Schedule {index}: sessionNumber is required.")
        day = _parse_int(item.get("dayOfWeek"), "dayOfWeek", index)
        number = _parse_int(item.get("sessionNumber"), "sessionNumber", index)
        if not 0 <= day < DAYS_PER_WEEK:
            raise ValidationError(f"Schedule {index}: dayOfWeek must be between 0 and 6.")
        if number < 1:
            raise ValidationError(f"Schedule {index}: sessionNumber must be 1 or greater.")

        start = _parse_time(item.get("startTime"), "startTime", index)
        end = _parse_time(item.get("endTime"), "endTime", index)
        if start >= end:
            raise ValidationError(f"Schedule {index}: startTime must be before endTime.")

        name = (item.get("sessionName") or "").strip() or f"Session {number}"
        specs.append(SessionSpec(day, number, start, end, name))

    seen = set()
    for spec in specs:
        if spec.key in seen:
            raise ValidationError(f"Duplicate session {spec.session_number} on day {spec.day_of_week}.")
        seen.add(spec.key)

    by_day = {}
    for spec in specs:
        by_day.setdefault(spec.day_of_week, []).append(spec)
    for day, day_specs in by_day.items():
        day_specs.sort(key=lambda s: minute_of_day(s.start_time))
        for earlier, later in zip(day_specs, day_specs[1:]):
            if minute_of_day(later.start_time) <= minute_of_day(earlier.end_time):
                raise ValidationError(
                    f"Sessions {earlier.session_number} and {later.session_number} overlap on day {day}."
                )
    return specs


class ScheduleStore:
    """Reads and writes MeetingSession rows."""

    async def active_sessions(self):
        with storage_errors("Loading meeting schedules"):
            return [s async for s in MeetingSession.objects.filter(is_active=True).order_by("day_of_week", "session_number")]

    async def replace(self, specs):
        """
        Make ``specs`` the complete active schedule in one transaction.
        Listed sessions are upserted and reactivated; active sessions missing
        from the list are deactivated.
        """
        with storage_errors("Replacing meeting schedules"):
            return await sync_to_async(self._replace)(specs)

    @transaction.atomic
    def _replace(self, specs):
        keys = {spec.key for spec in specs}
        removed = 0
        for session in MeetingSession.objects.select_for_update().filter(is_active=True):
            if session.key not in keys:
                session.is_active = False
                session.save(update_fields=["is_active"])
                removed += 1
                logger.info(
                    "Deactivated schedule for day %s, session %s", session.day_of_week, session.session_number
                )

        saved = []
        for spec in specs:
            session, _ = MeetingSession.objects.update_or_create(
                day_of_week=spec.day_of_week,
                session_number=spec.session_number,
                defaults={
                    "start_time": spec.start_time,
                    "end_time": spec.end_time,
                    "session_name": spec.session_name,
                    "is_active": True,
                },
            )
            saved.append(session)
        logger.info("Meeting schedules replaced: %d active, %d deactivated", len(saved), removed)
        return saved

    async def deactivate(self, day_of_week, session_number):
        with storage_errors("Deleting meeting schedule"):
            updated = await MeetingSession.objects.filter(
                day_of_week=day_of_week, session_number=session_number, is_active=True
            ).aupdate(is_active=False)
        if not updated:
            raise NotFoundError(f"No active session {session_number} on day {day_of_week}.")
        logger.info("Deactivated schedule for day %s, session %s", day_of_week, session_number)
