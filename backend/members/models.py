from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from config.soft_delete import SoftDeleteModel

MEMBER_NUMBER_PREFIX = "SOC"


class Member(SoftDeleteModel):
    member_number = models.CharField(max_length=20, unique=True, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    dni = models.CharField(max_length=20, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)  # type: ignore[call-arg]
    joined_at = models.DateTimeField(default=timezone.now)
    left_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["last_name", "first_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["email"],
                condition=Q(deleted_at__isnull=True),
                name="member_unique_live_email",
            ),
            models.UniqueConstraint(
                fields=["dni"],
                condition=Q(deleted_at__isnull=True) & ~Q(dni=""),
                name="member_unique_live_dni",
            ),
        ]

    def save(self, *args, **kwargs):
        # Collapse stray whitespace so lookups by name and DNI stay predictable.
        self.first_name = " ".join(str(self.first_name or "").split())
        self.last_name = " ".join(str(self.last_name or "").split())
        self.dni = str(self.dni or "").strip()
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"{self.member_number} {self.display_name}"


class MemberNumberCounter(models.Model):
    prefix = models.CharField(max_length=8, unique=True, default=MEMBER_NUMBER_PREFIX)
    next_value = models.PositiveBigIntegerField(default=1)  # type: ignore[call-arg]
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("member number counter")

    def __str__(self):
        return f"{self.prefix} -> {self.next_value}"
