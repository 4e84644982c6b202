from asgiref.sync import async_to_sync
from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from attendance_app.exceptions import StorageError


class Command(BaseCommand):
    help = "Check out every member who is still checked in, flagging the records for review."

    def handle(self, *args, **options):
        engine = apps.get_app_config("attendance_app").get_engine()
        try:
            summary = async_to_sync(engine.force_logout_all)()
        except StorageError as exc:
            raise CommandError(str(exc))

        if summary.total == 0:
            self.stdout.write("No members currently checked in.")
            return

        style = self.style.SUCCESS if summary.failed == 0 else self.style.WARNING
        self.stdout.write(style(f"Auto-logout completed: {summary.succeeded} successful, {summary.failed} errors"))
