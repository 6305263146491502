from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import ExpressionWrapper, F, OuterRef, Q, Subquery, Sum, Value
from django.db.models.functions import Coalesce
from simple_history.models import HistoricalRecords  # pyright: ignore[reportMissingImports]

from activities.models import Activity
from config.soft_delete import SoftDeleteModel, SoftDeleteQuerySet
from members.models import Member

ZERO = Decimal("0.00")


def _money_field():
    return models.DecimalField(max_digits=12, decimal_places=2)


def _money_sum(queryset, field_name: str):
    subquery = (
        queryset.filter(membership=OuterRef("pk"))
        .order_by()
        .values("membership")
        .annotate(total=Sum(field_name))
        .values("total")
    )
    return Coalesce(
        Subquery(subquery, output_field=_money_field()),
        Value(ZERO),
        output_field=_money_field(),
    )


class MembershipQuerySet(SoftDeleteQuerySet):
    def with_totals(self):
        """Annotate ``total_charged``, ``total_paid`` and ``balance`` from live child rows."""
        from payments.models import Payment

        return self.annotate(
            total_charged=_money_sum(MembershipActivity.objects.all(), "price_at_attachment"),
            total_paid=_money_sum(Payment.objects.live(), "amount"),
        ).annotate(
            balance=ExpressionWrapper(
                F("total_charged") - F("total_paid"),
                output_field=_money_field(),
            )
        )

    def unpaid(self):
        return self.with_totals().filter(total_charged__gt=F("total_paid"))

    def covering(self, day):
        return self.filter(period_start__lte=day, period_end__gte=day)


class Membership(SoftDeleteModel):
    member = models.ForeignKey(Member, on_delete=models.PROTECT, related_name="memberships")
    period_year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(2000), MaxValueValidator(2100)],
    )
    period_month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    period_start = models.DateField()
    period_end = models.DateField()
    activities = models.ManyToManyField(
        Activity,
        through="MembershipActivity",
        related_name="memberships",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = MembershipQuerySet.as_manager()

    class Meta:
        ordering = ["-period_start", "-id"]
        indexes = [
            models.Index(fields=["member", "-period_start"], name="ms_member_start_idx"),
            models.Index(fields=["period_start", "period_end"], name="ms_period_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["member", "period_year", "period_month"],
                condition=Q(deleted_at__isnull=True),
                name="unique_live_membership_per_member_period",
            ),
            models.CheckConstraint(
                condition=Q(period_month__gte=1) & Q(period_month__lte=12),
                name="membership_period_month_range",
            ),
        ]

    def __str__(self):
        return f"{self.member} - {self.period_month:02d}/{self.period_year}"


class MembershipActivity(models.Model):
    membership = models.ForeignKey(Membership, on_delete=models.CASCADE, related_name="lines")
    # PROTECT: catalog rows are only ever soft-deleted, so frozen lines keep their activity.
    activity = models.ForeignKey(Activity, on_delete=models.PROTECT, related_name="membership_lines")
    price_at_attachment = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["membership", "activity"],
                name="unique_membership_activity_line",
            ),
        ]

    def __str__(self):
        return f"{self.membership_id}:{self.activity_id} @ {self.price_at_attachment}"
