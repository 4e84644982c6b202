"""
Main URL configuration for the attendance kiosk
"""
from django.contrib import admin
from django.urls import include, path

from . import views

urlpatterns = [
    # Admin panel
    path("admin/", admin.site.urls),

    # Authentication
    path("login/", views.loginView, name="login"),
    path("logout/", views.logoutView, name="logout"),

    # JSON API
    path("api/members/", include("members_app.urls")),
    path("api/", include("attendance_app.urls")),
]

# API clients get JSON for every error
handler400 = "kiosk_main.views.error_400"
handler403 = "kiosk_main.views.error_403"
handler404 = "kiosk_main.views.error_404"
handler500 = "kiosk_main.views.error_500"
