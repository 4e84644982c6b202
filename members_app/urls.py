from django.urls import path

from . import views

urlpatterns = [
    path("", views.members, name="members"),
    path("<int:member_id>", views.member_detail, name="memberDetail"),
    path("<int:member_id>/badge.png", views.member_badge, name="memberBadge"),
]
