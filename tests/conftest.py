from datetime import datetime, time

import pytest
from django.utils import timezone

from attendance_app.models import MeetingSession
from members_app.models import Member

# 2024-01-07 is a Sunday, so REFERENCE_SUNDAY.day + n lands on schedule day n
REFERENCE_SUNDAY = datetime(2024, 1, 7)


def at(day, hhmm, second=0):
    """Aware datetime for schedule day ``day`` (0 = Sunday) at ``HH:MM``."""
    hour, minute = (int(part) for part in hhmm.split(":"))
    naive = REFERENCE_SUNDAY.replace(day=REFERENCE_SUNDAY.day + day, hour=hour, minute=minute, second=second)
    return timezone.make_aware(naive)


def hm(hhmm):
    hour, minute = (int(part) for part in hhmm.split(":"))
    return time(hour, minute)


def make_session(day, number, start, end, is_active=True, name=""):
    """Unsaved session, for tests that do not touch the database."""
    return MeetingSession(
        day_of_week=day,
        session_number=number,
        start_time=hm(start),
        end_time=hm(end),
        session_name=name,
        is_active=is_active,
    )


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class RecordingScheduler:
    """Stands in for the auto-logout scheduler and records what the engine asks of it."""

    def __init__(self):
        self.calls = []

    async def rearm(self):
        self.calls.append(("rearm",))

    async def cancel(self, day_of_week, session_number):
        self.calls.append(("cancel", day_of_week, session_number))
        return True


@pytest.fixture
def monday_morning(db):
    return MeetingSession.objects.create(
        day_of_week=1, session_number=1, start_time=hm("08:00"), end_time=hm("12:00"), session_name="Session 1"
    )


@pytest.fixture
def member(db):
    return Member.objects.create(name="Ada Lovelace", barcode="M-0001")


@pytest.fixture
def other_member(db):
    return Member.objects.create(name="Grace Hopper", barcode="M-0002")
