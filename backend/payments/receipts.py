"""
Payment receipts.

Receipts are never stored. Every figure is recomputed from the current
membership rows when the receipt is generated, so a receipt fetched after the
membership's lines changed reflects the new charge, not the one in force at
payment time.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal

from django.utils import translation
from django.utils.dates import MONTHS

from config.exceptions import NotFoundError
from memberships.ledger import compute_totals
from memberships.models import ZERO

from .models import Payment

SYSTEM_PROCESSOR_NAME = "Sistema"


def format_money(value: Decimal) -> str:
    return f"${value:,.2f}"


def period_label(year: int, month: int) -> str:
    with translation.override("es"):
        month_name = str(MONTHS[month])
    return f"{month_name.capitalize()} {year}"


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    price: Decimal


@dataclass(frozen=True)
class Receipt:
    payment_id: int
    receipt_number: str
    issued_at: datetime
    member_id: int
    member_number: str
    member_name: str
    membership_id: int
    period_label: str
    total_charged: Decimal
    total_paid_before: Decimal
    amount: Decimal
    total_paid: Decimal
    new_balance: Decimal
    is_settled: bool
    payment_method: str
    paid_at: datetime
    processed_by: str
    activities: list[ReceiptLine] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def generate_receipt(payment_id: int) -> Receipt:
    payment = (
        Payment.objects.live()
        .select_related("membership__member", "payment_method", "processed_by")
        .filter(id=payment_id)
        .first()
    )
    if payment is None:
        raise NotFoundError("Pago no encontrado")

    membership = payment.membership
    member = membership.member
    lines = list(membership.lines.select_related("activity").order_by("id"))
    other_payments = list(membership.payments.live().exclude(id=payment.id))

    before = compute_totals(lines, other_payments)
    after = compute_totals(lines, [*other_payments, payment])

    return Receipt(
        payment_id=payment.id,
        receipt_number=payment.receipt_number,
        issued_at=payment.created_at,
        member_id=member.id,
        member_number=member.member_number,
        member_name=member.display_name,
        membership_id=membership.id,
        period_label=period_label(membership.period_year, membership.period_month),
        total_charged=after.total_charged,
        total_paid_before=before.total_paid,
        amount=payment.amount,
        total_paid=after.total_paid,
        new_balance=after.balance,
        is_settled=after.balance <= ZERO,
        payment_method=payment.payment_method.name,
        paid_at=payment.paid_at,
        processed_by=(
            payment.processed_by.display_name if payment.processed_by else SYSTEM_PROCESSOR_NAME
        ),
        activities=[
            ReceiptLine(name=line.activity.name, price=line.price_at_attachment)
            for line in lines
        ],
    )
