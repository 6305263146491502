from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from audit.services import record_audit_event
from config.exceptions import NotFoundError, ValidationError
from memberships.ledger import get_live_membership, get_membership_totals
from memberships.models import ZERO, Membership

from .models import Payment, PaymentMethod
from .receipts import Receipt, format_money, generate_receipt

logger = logging.getLogger(__name__)


def _month_bounds(value: date) -> tuple[date, date]:
    start = value.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


def register_payment(
    membership_id: int,
    payment_method_id: int,
    amount: Decimal,
    *,
    paid_at=None,
    processed_by=None,
    now=None,
) -> Receipt:
    amount = Decimal(str(amount))
    with transaction.atomic():
        # Lock before reading the balance so concurrent payments cannot both pass the check.
        membership = get_live_membership(membership_id, for_update=True)
        payment_method = PaymentMethod.objects.filter(id=payment_method_id, is_active=True).first()
        if payment_method is None:
            raise NotFoundError("El método de pago no existe")
        if amount <= ZERO:
            raise ValidationError("El monto debe ser mayor a cero")

        balance = get_membership_totals(membership).balance
        if amount > balance:
            raise ValidationError(
                f"El monto excede el saldo pendiente de {format_money(balance)}. "
                "No se permite sobrepago."
            )

        payment = Payment.objects.create(
            membership=membership,
            payment_method=payment_method,
            processed_by=processed_by if processed_by and processed_by.is_authenticated else None,
            amount=amount,
            paid_at=paid_at or now or timezone.now(),
        )
        record_audit_event(
            "payment.registered",
            message=f"Pago {payment.receipt_number} registrado.",
            actor=processed_by,
            member=membership.member,
            membership=membership,
            payment=payment,
            metadata={
                "amount": str(amount),
                "balance_before": str(balance),
                "payment_method": payment_method.name,
            },
        )

    logger.info(
        "Payment %s registered on membership %s for %s",
        payment.receipt_number,
        membership.id,
        amount,
    )
    return generate_receipt(payment.id)


def void_payment(payment_id: int, *, actor=None, now=None) -> bool:
    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .select_related("membership__member")
            .filter(id=payment_id)
            .first()
        )
        if payment is None or not payment.soft_delete(now=now):
            return False
        record_audit_event(
            "payment.voided",
            message=f"Pago {payment.receipt_number} anulado.",
            actor=actor,
            member=payment.membership.member,
            membership=payment.membership,
            payment=payment,
            metadata={"amount": str(payment.amount)},
        )
    logger.info("Payment %s voided", payment.receipt_number)
    return True


def filter_payments_by_date(queryset, date_from=None, date_to=None):
    if date_from:
        queryset = queryset.filter(paid_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(paid_at__date__lte=date_to)
    return queryset


def _sum_amount(queryset) -> Decimal:
    return queryset.aggregate(total=Sum("amount"))["total"] or ZERO


def payment_statistics(date_from=None, date_to=None, *, today=None) -> dict:
    today = today or timezone.localdate()
    month_start, month_end = _month_bounds(today)
    live_payments = Payment.objects.live()
    ranged = filter_payments_by_date(live_payments, date_from, date_to)

    pending_balances = (
        Membership.objects.live()
        .with_totals()
        .filter(balance__gt=0)
        .values_list("balance", flat=True)
    )

    by_method = (
        ranged.values("payment_method__name")
        .annotate(total=Sum("amount"), count=Count("id"))
        .order_by("-total", "payment_method__name")
    )
    by_day = (
        ranged.annotate(day=TruncDate("paid_at"))
        .values("day")
        .annotate(total=Sum("amount"), count=Count("id"))
        .order_by("day")
    )

    return {
        "date_from": date_from,
        "date_to": date_to,
        "total_collected": _sum_amount(ranged),
        "payment_count": ranged.count(),
        "collected_today": _sum_amount(live_payments.filter(paid_at__date=today)),
        "collected_this_month": _sum_amount(
            filter_payments_by_date(live_payments, month_start, month_end)
        ),
        "total_pending": sum(pending_balances, ZERO),
        "by_method": [
            {"method": row["payment_method__name"], "total": row["total"], "count": row["count"]}
            for row in by_method
        ],
        "by_day": [
            {"date": row["day"], "total": row["total"], "count": row["count"]}
            for row in by_day
        ],
    }
