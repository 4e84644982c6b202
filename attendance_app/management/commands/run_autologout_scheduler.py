import asyncio
import logging

from django.apps import apps
from django.conf import settings
from django.core.management.base import BaseCommand

from attendance_app.exceptions import StorageError
from attendance_app.services.schedule_store import ScheduleStore
from attendance_app.services.scheduler import DEFAULT_GRACE_MINUTES, AutoLogoutScheduler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Run the meeting-end auto-logout scheduler in the foreground. "
        "Triggers are rebuilt from the schedule table every --refresh-minutes."
    )

    def add_arguments(self, parser):
        parser.add_argument("--refresh-minutes", type=int, default=5)

    def handle(self, *args, **options):
        try:
            asyncio.run(self._serve(max(options["refresh_minutes"], 1) * 60))
        except KeyboardInterrupt:
            self.stdout.write("Auto-logout scheduler stopped.")

    def build_scheduler(self):
        engine = apps.get_app_config("attendance_app").get_engine(scheduler=None)
        return AutoLogoutScheduler(
            load_sessions=ScheduleStore().active_sessions,
            on_fire=engine.force_logout_all,
            grace_minutes=getattr(settings, "ATTENDANCE_AUTO_LOGOUT_GRACE_MINUTES", DEFAULT_GRACE_MINUTES),
        )

    async def refresh(self, scheduler):
        """Re-arm from the database; on failure the previous triggers stay armed."""
        try:
            triggers = await scheduler.rearm()
        except StorageError:
            # rearm() already logged it
            return None
        logger.info("Auto-logout scheduler armed with %d triggers", len(triggers))
        return triggers

    async def _serve(self, refresh_seconds, scheduler=None):
        scheduler = scheduler or self.build_scheduler()
        try:
            while True:
                await self.refresh(scheduler)
                await asyncio.sleep(refresh_seconds)
        finally:
            await scheduler.close()
