"""
Attendance app views
Kiosk scan endpoint, schedule management, review queue and reports (JSON)
"""
import json
from datetime import date

from asgiref.sync import async_to_sync
from django.apps import apps
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from kiosk_main.decorators import api_login_required

from .exceptions import NotFoundError, OutOfScheduleError, StorageError, ValidationError
from .services import reports


def get_engine():
    return apps.get_app_config("attendance_app").get_engine()


def _json_body(request):
    """Parse a JSON request body; returns (data, error_response)."""
    try:
        data = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return None, JsonResponse({"error": "Invalid JSON payload."}, status=400)
    if not isinstance(data, dict):
        return None, JsonResponse({"error": "JSON body must be an object."}, status=400)
    return data, None


def _parse_date(value):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _database_error():
    return JsonResponse({"error": "Database error"}, status=500)


@csrf_exempt
@require_POST
def scan(request):
    """Kiosk scan: decides check-in or check-out for the scanned barcode."""
    data, error = _json_body(request)
    if error:
        return error

    barcode = str(data.get("barcode") or "").strip()
    if not barcode:
        return JsonResponse({"error": "Barcode is required"}, status=400)

    try:
        result = async_to_sync(get_engine().record_scan)(barcode)
    except NotFoundError:
        return JsonResponse({"error": "Member not found"}, status=404)
    except OutOfScheduleError as exc:
        # Expected outside sessions, shown on the kiosk with the next session
        return JsonResponse(exc.as_dict(), status=403)
    except StorageError:
        return _database_error()

    return JsonResponse(result.as_dict())


@api_login_required
@require_GET
def attendance_list(request):
    member_id = request.GET.get("memberId")
    start_date = request.GET.get("startDate")
    end_date = request.GET.get("endDate")

    if member_id:
        try:
            queryset = reports.records_for_member(int(member_id))
        except ValueError:
            return JsonResponse({"error": "Invalid memberId."}, status=400)
    elif start_date and end_date:
        start, end = _parse_date(start_date), _parse_date(end_date)
        if not start or not end:
            return JsonResponse({"error": "Dates must be YYYY-MM-DD."}, status=400)
        queryset = reports.records_between(start, end)
    else:
        queryset = reports.all_records()

    return JsonResponse([record.as_dict() for record in queryset], safe=False)


def _summary_range(request):
    default_start, default_end = reports.month_bounds()
    start = _parse_date(request.GET.get("startDate")) if request.GET.get("startDate") else default_start
    end = _parse_date(request.GET.get("endDate")) if request.GET.get("endDate") else default_end
    return start, end


@api_login_required
@require_GET
def attendance_summary(request):
    """Hours and days present per member, defaulting to the current month."""
    start, end = _summary_range(request)
    if not start or not end:
        return JsonResponse({"error": "Dates must be YYYY-MM-DD."}, status=400)

    summary = reports.summarize(reports.records_between(start, end))
    return JsonResponse({str(member_id): entry for member_id, entry in summary.items()})


@api_login_required
@require_GET
def attendance_export(request):
    """Download the attendance summary as an Excel workbook."""
    start, end = _summary_range(request)
    if not start or not end:
        return JsonResponse({"error": "Dates must be YYYY-MM-DD."}, status=400)

    summary = reports.summarize(reports.records_between(start, end))
    wb = reports.summary_workbook(summary, start, end)

    response = HttpResponse(content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    response["Content-Disposition"] = f'attachment; filename="attendance_{start.isoformat()}_{end.isoformat()}.xlsx"'
    wb.save(response)
    return response


@require_GET
def currently_checked_in(request):
    try:
        members = async_to_sync(get_engine().checked_in_members)()
    except StorageError:
        return _database_error()

    return JsonResponse(
        [
            {
                "id": member.id,
                "name": member.name,
                "last_checkin": member.last_checkin.isoformat() if member.last_checkin else None,
            }
            for member in members
        ],
        safe=False,
    )


@api_login_required
@require_GET
def flagged_records(request):
    try:
        records = async_to_sync(get_engine().flagged_records)()
    except StorageError:
        return _database_error()
    return JsonResponse([record.as_dict() for record in records], safe=False)


@csrf_exempt
@api_login_required
@require_http_methods(["PUT"])
def review_record(request, record_id):
    try:
        async_to_sync(get_engine().mark_reviewed)(record_id)
    except NotFoundError as exc:
        return JsonResponse({"error": str(exc)}, status=404)
    except StorageError:
        return _database_error()
    return JsonResponse({"success": True})


@csrf_exempt
@api_login_required
@require_POST
def trigger_auto_logout(request):
    """Run the meeting-end logout pass now."""
    try:
        summary = async_to_sync(get_engine().force_logout_all)()
    except StorageError:
        return _database_error()
    return JsonResponse(
        {"success": True, "message": "Auto-logout triggered manually", **summary.as_dict()}
    )


@csrf_exempt
@api_login_required
@require_http_methods(["GET", "PUT"])
def meeting_schedules(request):
    engine = get_engine()

    if request.method == "GET":
        try:
            sessions = async_to_sync(engine.list_schedules)()
        except StorageError:
            return _database_error()
        return JsonResponse([session.as_dict() for session in sessions], safe=False)

    data, error = _json_body(request)
    if error:
        return error

    try:
        saved = async_to_sync(engine.replace_schedules)(data.get("schedules"))
    except ValidationError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except StorageError:
        return JsonResponse({"error": "Error updating schedules"}, status=500)

    return JsonResponse(
        {
            "success": True,
            "message": "Meeting schedules updated successfully",
            "schedules": [session.as_dict() for session in saved],
        }
    )


@require_GET
def current_meeting_session(request):
    try:
        status = async_to_sync(get_engine().current_session_status)()
    except StorageError:
        return _database_error()
    return JsonResponse(status.as_dict())


@csrf_exempt
@api_login_required
@require_http_methods(["DELETE"])
def delete_meeting_schedule(request, day, session):
    try:
        async_to_sync(get_engine().delete_schedule)(day, session)
    except NotFoundError as exc:
        return JsonResponse({"error": str(exc)}, status=404)
    except StorageError:
        return _database_error()
    return JsonResponse({"success": True, "message": "Session deleted and auto-logout removed"})


@csrf_exempt
@api_login_required
@require_POST
def refresh_meeting_schedules(request):
    try:
        async_to_sync(get_engine().refresh_schedules)()
    except StorageError:
        return JsonResponse({"error": "Failed to refresh scheduler"}, status=500)
    return JsonResponse({"success": True, "message": "Meeting scheduler refreshed"})
