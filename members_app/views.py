"""
Members app views
Roster management for the kiosk (JSON) and printable QR badges
"""
import json
from io import BytesIO

import qrcode
from django.db import IntegrityError, transaction
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from kiosk_main.decorators import api_login_required

from .models import Member


def _member_fields(request):
    """Read name and barcode from a JSON body; returns (fields, error_response)."""
    try:
        data = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return None, JsonResponse({"error": "Invalid JSON payload."}, status=400)
    if not isinstance(data, dict):
        return None, JsonResponse({"error": "JSON body must be an object."}, status=400)

    name = str(data.get("name") or "").strip()
    barcode = str(data.get("barcode") or "").strip()
    if not name or not barcode:
        return None, JsonResponse({"error": "Name and barcode are required"}, status=400)
    return {"name": name, "barcode": barcode}, None


@csrf_exempt
@api_login_required
@require_http_methods(["GET", "POST"])
def members(request):
    if request.method == "GET":
        return JsonResponse([member.as_dict() for member in Member.objects.order_by("name")], safe=False)

    fields, error = _member_fields(request)
    if error:
        return error

    try:
        with transaction.atomic():
            member = Member.objects.create(**fields)
    except IntegrityError:
        return JsonResponse({"error": "Barcode already exists"}, status=400)
    return JsonResponse({"success": True, "id": member.id})


@csrf_exempt
@api_login_required
@require_http_methods(["PUT", "DELETE"])
def member_detail(request, member_id):
    member = get_object_or_404(Member, id=member_id)

    if request.method == "DELETE":
        # Attendance records go with the member (on_delete=CASCADE)
        member.delete()
        return JsonResponse({"success": True})

    fields, error = _member_fields(request)
    if error:
        return error

    member.name = fields["name"]
    member.barcode = fields["barcode"]
    try:
        with transaction.atomic():
            member.save(update_fields=["name", "barcode"])
    except IntegrityError:
        return JsonResponse({"error": "Barcode already exists"}, status=400)
    return JsonResponse({"success": True})


@api_login_required
@require_GET
def member_badge(request, member_id):
    """PNG QR code of the member's barcode, for printing on a card."""
    member = get_object_or_404(Member, id=member_id)

    image = qrcode.make(member.barcode)
    buffer = BytesIO()
    image.save(buffer, format="PNG")

    response = HttpResponse(buffer.getvalue(), content_type="image/png")
    response["Content-Disposition"] = f'inline; filename="badge_{member.id}.png"'
    return response
