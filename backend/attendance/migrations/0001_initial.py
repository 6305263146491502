import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Attendance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("entered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("member", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="attendances", to="members.member")),
            ],
            options={
                "ordering": ["-entered_at", "-id"],
                "indexes": [
                    models.Index(fields=["member", "-entered_at"], name="att_member_entered_idx"),
                    models.Index(fields=["-entered_at"], name="att_entered_idx"),
                ],
            },
        ),
    ]
