"""
ASGI entry point for the attendance kiosk.
"""
import os

from django.apps import apps
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "kiosk_main.settings")

application = get_asgi_application()
apps.get_app_config("attendance_app").start_scheduler()
