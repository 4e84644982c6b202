"""
Attendance engine: the operations the kiosk and management views call.

Every storage call is awaited in turn; synchronous callers go through
asgiref's ``async_to_sync``.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from attendance_app.exceptions import OutOfScheduleError, StorageError, storage_errors
from attendance_app.models import AttendanceRecord, MeetingSession
from attendance_app.services import evaluator
from attendance_app.services.classifier import DEFAULT_REVIEW_WINDOW_MINUTES, classify
from attendance_app.services.records import RecordStore, last_record_for
from attendance_app.services.schedule_store import ScheduleStore, parse_schedules
from members_app.models import Member

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    member: Member
    record: AttendanceRecord
    direction: str
    flagged: bool
    session: Optional[MeetingSession] = None

    def as_dict(self):
        response = {
            "success": True,
            "member": self.member.as_dict(),
            "action": self.direction,
            "timestamp": self.record.scan_time.isoformat(),
        }
        if self.session is not None:
            response["session"] = {
                "number": self.session.session_number,
                "name": self.session.display_name,
                "startTime": self.session.start_time.strftime("%H:%M"),
                "endTime": self.session.end_time.strftime("%H:%M"),
            }
        if self.flagged:
            response["flaggedForReview"] = True
            response["reason"] = "Check-in close to session end"
        return response


@dataclass(frozen=True)
class SessionStatus:
    active_session: Optional[MeetingSession] = None
    next_session: Optional[MeetingSession] = None

    @property
    def active(self):
        return self.active_session is not None

    def as_dict(self):
        if self.active:
            return {"active": True, "session": self.active_session.as_dict()}
        return {
            "active": False,
            "nextSession": self.next_session.as_dict() if self.next_session else None,
        }


@dataclass(frozen=True)
class LogoutSummary:
    succeeded: int = 0
    failed: int = 0

    @property
    def total(self):
        return self.succeeded + self.failed

    def as_dict(self):
        return {"succeeded": self.succeeded, "failed": self.failed}


class AttendanceEngine:
    """
    Scan handling, session status, force logout and schedule maintenance.

    ``scheduler`` is anything with async ``rearm()`` and
    ``cancel(day, number)``; schedule changes are pushed to it.
    """

    def __init__(self, schedules=None, records=None, scheduler=None, clock=None, review_window=None):
        self.schedules = schedules or ScheduleStore()
        self.records = records or RecordStore()
        self.scheduler = scheduler
        self.clock = clock or timezone.localtime
        if review_window is None:
            review_window = getattr(settings, "ATTENDANCE_REVIEW_WINDOW_MINUTES", DEFAULT_REVIEW_WINDOW_MINUTES)
        self.review_window = review_window

    def _now(self, now):
        return timezone.localtime(now) if now is not None else self.clock()

    async def record_scan(self, barcode, now=None) -> ScanResult:
        """
        Record a kiosk scan. Raises NotFoundError for an unknown barcode and
        OutOfScheduleError for a check-in outside every session.
        """
        now = self._now(now)
        member = await self.records.find_member(barcode)
        sessions = await self.schedules.active_sessions()
        with storage_errors("Recording scan"):
            record, outcome = await sync_to_async(self._scan_locked)(member.id, sessions, now)

        logger.info(
            "%s for %s (%s)%s", outcome.direction, member.name, member.barcode,
            " - flagged for review" if outcome.flagged else "",
        )
        return ScanResult(
            member=member,
            record=record,
            direction=outcome.direction,
            flagged=outcome.flagged,
            session=outcome.session,
        )

    @transaction.atomic
    def _scan_locked(self, member_id, sessions, now):
        # Row lock on the member serialises concurrent scans of the same card
        list(Member.objects.select_for_update().filter(id=member_id))
        outcome = classify(last_record_for(member_id), sessions, now, self.review_window)
        if outcome.rejected:
            raise OutOfScheduleError(evaluator.next_session(sessions, now))
        record = AttendanceRecord.objects.create(
            member_id=member_id,
            scan_time=now,
            is_checkin=outcome.is_checkin,
            is_auto_logout=False,
            needs_review=outcome.flagged,
        )
        return record, outcome

    async def current_session_status(self, now=None) -> SessionStatus:
        now = self._now(now)
        sessions = await self.schedules.active_sessions()
        active = evaluator.within_session(sessions, now)
        if active is not None:
            return SessionStatus(active_session=active)
        return SessionStatus(next_session=evaluator.next_session(sessions, now))

    async def force_logout_all(self, now=None) -> LogoutSummary:
        """
        Check out every member still checked in. Each write stands alone:
        failures are counted and the pass carries on.
        """
        now = self._now(now)
        logger.info("Performing meeting-end automatic logout...")
        members = await self.records.checked_in_members()
        if not members:
            logger.info("No members currently checked in - no auto-logout needed")
            return LogoutSummary()

        succeeded = failed = 0
        for member in members:
            try:
                await self.records.append(
                    member.id, is_checkin=False, scan_time=now, is_auto_logout=True, needs_review=True
                )
            except StorageError as exc:
                failed += 1
                logger.error("Error auto-logging out %s: %s", member.name, exc)
            else:
                succeeded += 1
                logger.info("Meeting-end auto-logged out: %s (%s)", member.name, member.barcode)

        logger.info("Meeting-end auto-logout completed: %d successful, %d errors", succeeded, failed)
        return LogoutSummary(succeeded=succeeded, failed=failed)

    async def checked_in_members(self):
        return await self.records.checked_in_members()

    async def flagged_records(self):
        return await self.records.flagged()

    async def mark_reviewed(self, record_id):
        await self.records.mark_reviewed(record_id)

    async def list_schedules(self):
        return await self.schedules.active_sessions()

    async def replace_schedules(self, payload):
        """Validate and store a full schedule list, then re-arm auto-logout."""
        specs = parse_schedules(payload)
        saved = await self.schedules.replace(specs)
        await self.refresh_schedules()
        return saved

    async def delete_schedule(self, day_of_week, session_number):
        await self.schedules.deactivate(day_of_week, session_number)
        if self.scheduler is not None:
            await self.scheduler.cancel(day_of_week, session_number)
        await self.refresh_schedules()

    async def refresh_schedules(self):
        if self.scheduler is not None:
            await self.scheduler.rearm()
