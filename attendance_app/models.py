"""
Attendance app models
Weekly meeting sessions and the append-only attendance log
"""
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

# Day numbering used by stored schedules: 0 = Sunday ... 6 = Saturday
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
DAY_CHOICES = tuple(enumerate(DAY_NAMES))


class MeetingSession(models.Model):
    """
    One recurring weekly window during which members may check in.
    Identified by (day_of_week, session_number). Removed sessions are
    deactivated rather than deleted.
    """
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    session_number = models.PositiveSmallIntegerField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    session_name = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("day_of_week", "session_number")
        constraints = [
            models.UniqueConstraint(fields=["day_of_week", "session_number"], name="uniq_day_session_number")
        ]

    @property
    def key(self):
        return self.day_of_week, self.session_number

    @property
    def day_name(self):
        return DAY_NAMES[self.day_of_week]

    @property
    def display_name(self):
        return self.session_name or f"Session {self.session_number}"

    def clean(self):
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError("Session must start before it ends on the same day.")

    def as_dict(self):
        return {
            "dayOfWeek": self.day_of_week,
            "day": self.day_name,
            "sessionNumber": self.session_number,
            "sessionName": self.display_name,
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M"),
            "isActive": self.is_active,
        }

    def __str__(self):
        return f"{self.day_name} {self.display_name} ({self.start_time:%H:%M}-{self.end_time:%H:%M})"


class AttendanceRecord(models.Model):
    """
    A single scan (or forced checkout) for a member.
    Direction alternation is decided when scanning, not stored as a constraint.
    """
    member = models.ForeignKey("members_app.Member", on_delete=models.CASCADE, related_name="attendance_records")
    scan_time = models.DateTimeField(default=timezone.now, db_index=True)
    is_checkin = models.BooleanField(default=True)
    is_auto_logout = models.BooleanField(default=False)
    needs_review = models.BooleanField(default=False)

    class Meta:
        ordering = ("-scan_time", "-id")
        indexes = [
            models.Index(fields=["member", "scan_time"], name="idx_member_scan_time"),
        ]

    @property
    def action(self):
        return "check-in" if self.is_checkin else "check-out"

    def as_dict(self):
        data = {
            "id": self.id,
            "member_id": self.member_id,
            "scan_time": self.scan_time.isoformat(),
            "is_checkin": self.is_checkin,
            "is_auto_logout": self.is_auto_logout,
            "needs_review": self.needs_review,
        }
        # Only present when the member was fetched alongside the record
        if "member" in self._state.fields_cache:
            data["name"] = self.member.name
            data["barcode"] = self.member.barcode
        return data

    def __str__(self):
        return f"{self.member_id} {self.action} @ {self.scan_time:%Y-%m-%d %H:%M}"
