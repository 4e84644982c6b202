"""
WSGI entry point for the attendance kiosk.
"""
import os

from django.apps import apps
from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "kiosk_main.settings")

application = get_wsgi_application()
apps.get_app_config("attendance_app").start_scheduler()
