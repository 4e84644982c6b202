"""
Attendance reporting: record listings, hours summary and Excel export.
"""
from collections import OrderedDict
from datetime import timedelta

import openpyxl
from openpyxl.styles import Font
from django.utils import timezone

from attendance_app.models import AttendanceRecord


def records_between(start_date, end_date):
    # Inclusive on both calendar days, evaluated in local time
    return (
        AttendanceRecord.objects.filter(scan_time__date__gte=start_date, scan_time__date__lte=end_date)
        .select_related("member")
        .order_by("-scan_time", "-id")
    )


def records_for_member(member_id):
    return AttendanceRecord.objects.filter(member_id=member_id).select_related("member").order_by("-scan_time", "-id")


def all_records():
    return AttendanceRecord.objects.select_related("member").order_by("-scan_time", "-id")


def month_bounds(today=None):
    today = today or timezone.localdate()
    start = today.replace(day=1)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    return start, next_month - timedelta(days=1)


def summarize(records):
    """
    Per-member days present and hours in the building.

    Records are grouped by local day and paired in scan order: each
    check-in immediately followed by a check-out counts towards the total.
    """
    summary = OrderedDict()
    daily = {}
    for record in records:
        entry = summary.setdefault(
            record.member_id,
            {"name": record.member.name, "totalHours": 0, "daysPresent": []},
        )
        day = timezone.localtime(record.scan_time).date().isoformat()
        if day not in entry["daysPresent"]:
            entry["daysPresent"].append(day)
        daily.setdefault((record.member_id, day), []).append(record)

    totals = {}
    for (member_id, _day), day_records in daily.items():
        day_records.sort(key=lambda r: (r.scan_time, r.id))
        for first, second in zip(day_records[::2], day_records[1::2]):
            if first.is_checkin and not second.is_checkin:
                seconds = (second.scan_time - first.scan_time).total_seconds()
                totals[member_id] = totals.get(member_id, 0) + seconds / 3600

    for member_id, entry in summary.items():
        entry["totalHours"] = round(totals.get(member_id, 0), 2)
        entry["daysPresent"].sort()
    return summary


def summary_workbook(summary, start_date, end_date):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Summary"
    ws.append(["Attendance summary", f"{start_date.isoformat()} to {end_date.isoformat()}"])
    ws["A1"].font = Font(bold=True)
    ws.append([])
    ws.append(["Member ID", "Name", "Days Present", "Total Hours"])
    for cell in ws[3]:
        cell.font = Font(bold=True)

    for member_id, entry in summary.items():
        ws.append([member_id, entry["name"], len(entry["daysPresent"]), entry["totalHours"]])

    ws.column_dimensions["B"].width = 30
    ws.column_dimensions["C"].width = 14
    ws.column_dimensions["D"].width = 14
    return wb
