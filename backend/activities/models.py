from decimal import Decimal

from django.core.validators import MinLengthValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from config.soft_delete import SoftDeleteModel


class Activity(SoftDeleteModel):
    name = models.CharField(max_length=100, validators=[MinLengthValidator(3)])
    description = models.CharField(max_length=500, blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_base_due = models.BooleanField(default=False)  # type: ignore[call-arg]
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "activities"
        constraints = [
            models.UniqueConstraint(
                fields=["name"],
                condition=Q(deleted_at__isnull=True),
                name="activity_unique_live_name",
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name="activity_price_non_negative",
            ),
        ]

    def __str__(self):
        return self.name
