from django.db import models
from django.utils import timezone

from config.soft_delete import SoftDeleteModel
from members.models import Member


class Attendance(SoftDeleteModel):
    member = models.ForeignKey(Member, on_delete=models.PROTECT, related_name="attendances")
    entered_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-entered_at", "-id"]
        indexes = [
            models.Index(fields=["member", "-entered_at"], name="att_member_entered_idx"),
            models.Index(fields=["-entered_at"], name="att_entered_idx"),
        ]

    def __str__(self):
        return f"{self.member} @ {self.entered_at:%Y-%m-%d %H:%M}"
