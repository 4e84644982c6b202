from django.apps import AppConfig


class MembersAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "members_app"
    verbose_name = "Members"
