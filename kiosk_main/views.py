"""
Authentication views for the attendance kiosk
Management and reporting endpoints need an admin session
"""
import json
import logging

from django.contrib.auth import authenticate, login as auth_login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 50
PASSWORD_MAX_LENGTH = 100


@csrf_exempt
@require_POST
def loginView(request):
    """
    Log an administrator in with username and password (JSON body)
    Only staff accounts may use the management views
    """
    try:
        data = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return JsonResponse({"error": "Invalid JSON payload."}, status=400)

    username = data.get("username") if isinstance(data, dict) else None
    password = data.get("password") if isinstance(data, dict) else None
    if not username or not password:
        return JsonResponse({"error": "Username and password are required"}, status=400)
    if not isinstance(username, str) or not isinstance(password, str):
        return JsonResponse({"error": "Invalid input format"}, status=400)

    username = username.strip()
    if not username or len(username) > USERNAME_MAX_LENGTH:
        return JsonResponse({"error": "Invalid username length"}, status=400)
    if len(password) > PASSWORD_MAX_LENGTH:
        return JsonResponse({"error": "Invalid password length"}, status=400)

    user = authenticate(request, username=username, password=password)
    if user is None or not user.is_staff:
        logger.warning("Failed management login for %s", username)
        return JsonResponse({"error": "Invalid credentials"}, status=401)

    # login() rotates the session key
    auth_login(request, user)
    return JsonResponse({"success": True})


@csrf_exempt
@require_POST
def logoutView(request):
    logout(request)
    return JsonResponse({"success": True})


def error_400(request, exception=None):
    return JsonResponse({"error": "Bad request"}, status=400)


def error_403(request, exception=None):
    return JsonResponse({"error": "Forbidden"}, status=403)


def error_404(request, exception=None):
    return JsonResponse({"error": "Not found"}, status=404)


def error_500(request):
    return JsonResponse({"error": "Server error"}, status=500)
