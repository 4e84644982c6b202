"""
Attendance record access: latest scan per member, the checked-in set, appends.
"""
from django.db.models import OuterRef, Subquery

from attendance_app.exceptions import NotFoundError, storage_errors
from attendance_app.models import AttendanceRecord
from members_app.models import Member


def latest_first(queryset):
    # Ties on scan_time go to the most recently inserted row
    return queryset.order_by("-scan_time", "-id")


def last_record_for(member_id):
    """Synchronous lookup, for use inside a transaction."""
    return latest_first(AttendanceRecord.objects.filter(member_id=member_id)).first()


def checked_in_queryset():
    latest = latest_first(AttendanceRecord.objects.filter(member=OuterRef("pk")))
    return (
        Member.objects.annotate(
            last_is_checkin=Subquery(latest.values("is_checkin")[:1]),
            last_checkin=Subquery(latest.values("scan_time")[:1]),
        )
        .filter(last_is_checkin=True)
        .order_by("-last_checkin", "id")
    )


class RecordStore:

    async def find_member(self, barcode):
        with storage_errors("Looking up member"):
            member = await Member.objects.filter(barcode=barcode).afirst()
        if member is None:
            raise NotFoundError("Member not found")
        return member

    async def last_record(self, member_id):
        with storage_errors("Loading last scan"):
            return await latest_first(AttendanceRecord.objects.filter(member_id=member_id)).afirst()

    async def checked_in_members(self):
        with storage_errors("Loading checked-in members"):
            return [m async for m in checked_in_queryset()]

    async def append(self, member_id, is_checkin, scan_time, is_auto_logout=False, needs_review=False):
        with storage_errors("Recording attendance"):
            return await AttendanceRecord.objects.acreate(
                member_id=member_id,
                is_checkin=is_checkin,
                scan_time=scan_time,
                is_auto_logout=is_auto_logout,
                needs_review=needs_review,
            )

    async def flagged(self):
        with storage_errors("Loading flagged records"):
            return [
                r async for r in latest_first(
                    AttendanceRecord.objects.filter(needs_review=True).select_related("member")
                )
            ]

    async def mark_reviewed(self, record_id):
        with storage_errors("Marking record as reviewed"):
            updated = await AttendanceRecord.objects.filter(id=record_id).aupdate(needs_review=False)
        if not updated:
            raise NotFoundError("Attendance record not found")
