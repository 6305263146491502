from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from simple_history.models import HistoricalRecords  # pyright: ignore[reportMissingImports]

from config.soft_delete import SoftDeleteModel


class PaymentMethod(models.Model):
    name = models.CharField(max_length=50, unique=True)
    is_active = models.BooleanField(default=True)  # type: ignore[call-arg]

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


def format_receipt_number(payment_id: int, paid_at) -> str:
    return f"PAG-{payment_id:06d}-{timezone.localtime(paid_at).year}"


class Payment(SoftDeleteModel):
    membership = models.ForeignKey(
        "memberships.Membership",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_payments",
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    paid_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    class Meta:
        ordering = ["-paid_at", "-id"]
        indexes = [
            models.Index(fields=["membership", "deleted_at"], name="pay_membership_live_idx"),
            models.Index(fields=["-paid_at"], name="pay_paid_at_idx"),
            models.Index(fields=["payment_method", "-paid_at"], name="pay_method_paid_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]

    @property
    def receipt_number(self) -> str:
        return format_receipt_number(self.id, self.paid_at)

    def __str__(self):
        return f"{self.receipt_number} - {self.amount}"
