"""
Attendance app configuration
Owns the in-process auto-logout scheduler for this Django process
"""
from django.apps import AppConfig
from django.conf import settings


class AttendanceAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "attendance_app"
    verbose_name = "Attendance"

    scheduler = None

    def ready(self):
        from attendance_app.services.scheduler import BackgroundScheduler

        # Not started here; the ASGI/WSGI entry point decides
        self.scheduler = BackgroundScheduler(build_auto_logout_scheduler)

    def get_engine(self, **kwargs):
        from attendance_app.services.engine import AttendanceEngine

        kwargs.setdefault("scheduler", self.scheduler)
        return AttendanceEngine(**kwargs)

    def start_scheduler(self):
        if getattr(settings, "ATTENDANCE_SCHEDULER_AUTOSTART", False):
            self.scheduler.start()


def build_auto_logout_scheduler():
    from attendance_app.services.engine import AttendanceEngine
    from attendance_app.services.schedule_store import ScheduleStore
    from attendance_app.services.scheduler import DEFAULT_GRACE_MINUTES, AutoLogoutScheduler

    # The firing engine has no scheduler of its own; it only logs members out
    engine = AttendanceEngine()
    return AutoLogoutScheduler(
        load_sessions=ScheduleStore().active_sessions,
        on_fire=engine.force_logout_all,
        grace_minutes=getattr(settings, "ATTENDANCE_AUTO_LOGOUT_GRACE_MINUTES", DEFAULT_GRACE_MINUTES),
    )
