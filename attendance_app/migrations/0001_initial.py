import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("members_app", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MeetingSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "day_of_week",
                    models.PositiveSmallIntegerField(
                        choices=[
                            (0, "Sunday"),
                            (1, "Monday"),
                            (2, "Tuesday"),
                            (3, "Wednesday"),
                            (4, "Thursday"),
                            (5, "Friday"),
                            (6, "Saturday"),
                        ]
                    ),
                ),
                ("session_number", models.PositiveSmallIntegerField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("session_name", models.CharField(blank=True, max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("day_of_week", "session_number"),
            },
        ),
        migrations.AddConstraint(
            model_name="meetingsession",
            constraint=models.UniqueConstraint(fields=("day_of_week", "session_number"), name="uniq_day_session_number"),
        ),
        migrations.CreateModel(
            name="AttendanceRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scan_time", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("is_checkin", models.BooleanField(default=True)),
                ("is_auto_logout", models.BooleanField(default=False)),
                ("needs_review", models.BooleanField(default=False)),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attendance_records",
                        to="members_app.member",
                    ),
                ),
            ],
            options={
                "ordering": ("-scan_time", "-id"),
            },
        ),
        migrations.AddIndex(
            model_name="attendancerecord",
            index=models.Index(fields=["member", "scan_time"], name="idx_member_scan_time"),
        ),
    ]
