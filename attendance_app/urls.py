from django.urls import path

from . import views

urlpatterns = [
    # Kiosk
    path("attendance/scan", views.scan, name="scan"),
    path("currently-checked-in", views.currently_checked_in, name="currentlyCheckedIn"),
    path("meeting-schedules/current", views.current_meeting_session, name="currentMeetingSession"),

    # Reports
    path("attendance", views.attendance_list, name="attendanceList"),
    path("attendance/summary", views.attendance_summary, name="attendanceSummary"),
    path("attendance/export", views.attendance_export, name="attendanceExport"),

    # Review queue and manual logout
    path("flagged-records", views.flagged_records, name="flaggedRecords"),
    path("flagged-records/<int:record_id>/review", views.review_record, name="reviewRecord"),
    path("trigger-auto-logout", views.trigger_auto_logout, name="triggerAutoLogout"),

    # Schedule management
    path("meeting-schedules", views.meeting_schedules, name="meetingSchedules"),
    path("meeting-schedules/refresh", views.refresh_meeting_schedules, name="refreshMeetingSchedules"),
    path("meeting-schedules/<int:day>/<int:session>", views.delete_meeting_schedule, name="deleteMeetingSchedule"),
]
