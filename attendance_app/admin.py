from asgiref.sync import async_to_sync
from django.apps import apps
from django.contrib import admin, messages

from .models import AttendanceRecord, MeetingSession


def _rearm():
    async_to_sync(apps.get_app_config("attendance_app").get_engine().refresh_schedules)()


@admin.register(MeetingSession)
class MeetingSessionAdmin(admin.ModelAdmin):
    list_display = ("day_of_week", "session_number", "session_name", "start_time", "end_time", "is_active")
    list_filter = ("day_of_week", "is_active")
    ordering = ("day_of_week", "session_number")
    actions = ("deactivate_sessions",)

    @admin.action(description="Deactivate selected sessions")
    def deactivate_sessions(self, request, queryset):
        updated = queryset.filter(is_active=True).update(is_active=False)
        _rearm()
        self.message_user(request, f"Deactivated {updated} sessions.", level=messages.SUCCESS)

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        _rearm()

    def has_delete_permission(self, request, obj=None):
        # Sessions are deactivated, never deleted
        return False


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("member", "scan_time", "is_checkin", "is_auto_logout", "needs_review")
    search_fields = ("member__name", "member__barcode")
    list_filter = ("is_checkin", "is_auto_logout", "needs_review")
    list_select_related = ("member",)
    actions = ("mark_reviewed",)

    @admin.action(description="Mark selected records as reviewed")
    def mark_reviewed(self, request, queryset):
        updated = queryset.filter(needs_review=True).update(needs_review=False)
        self.message_user(request, f"Marked {updated} records as reviewed.", level=messages.SUCCESS)
