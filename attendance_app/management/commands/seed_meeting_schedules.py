from datetime import time

from django.core.management.base import BaseCommand
from django.db import transaction

from attendance_app.models import MeetingSession

# Monday (1) through Friday (5), three sessions a day
DEFAULT_DAYS = range(1, 6)
DEFAULT_SESSIONS = (
    (1, time(8, 0), time(12, 0)),
    (2, time(13, 0), time(17, 0)),
    (3, time(18, 0), time(21, 0)),
)


class Command(BaseCommand):
    help = "Seed the default weekly meeting schedule (Mon-Fri, three sessions a day)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Write the defaults even if schedules already exist.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if MeetingSession.objects.exists() and not options["force"]:
            self.stdout.write("Meeting schedules already exist; nothing to do (use --force to overwrite).")
            return

        created = 0
        for day in DEFAULT_DAYS:
            for number, start, end in DEFAULT_SESSIONS:
                MeetingSession.objects.update_or_create(
                    day_of_week=day,
                    session_number=number,
                    defaults={
                        "start_time": start,
                        "end_time": end,
                        "session_name": f"Session {number}",
                        "is_active": True,
                    },
                )
                created += 1

        self.stdout.write(self.style.SUCCESS(f"Default meeting schedules ready: {created} sessions."))
