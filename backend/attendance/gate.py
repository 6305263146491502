"""
Attendance gate.

``check_status`` is a pure decision over the member and the membership that
covers today. The first matching rule wins:

1. unknown DNI: ``NotFoundError``
2. deactivated member: denied, ``INACTIVO``
3. no live membership covering today: denied, ``SIN MEMBRESIA VIGENTE``
4. outstanding balance on that membership: denied, ``SALDO PENDIENTE``
5. otherwise granted, ``AL DIA``

``record_entry`` re-runs the decision and only writes an attendance row when
access is granted. Repeated entries on the same day are allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from audit.services import record_audit_event
from config.exceptions import ValidationError
from members.services import find_member_by_dni
from memberships.ledger import get_membership_totals
from memberships.models import ZERO, Membership
from payments.receipts import format_money

from .models import Attendance

logger = logging.getLogger(__name__)

STATUS_INACTIVE = "INACTIVO"
STATUS_NO_MEMBERSHIP = "SIN MEMBRESIA VIGENTE"
STATUS_BALANCE_DUE = "SALDO PENDIENTE"
STATUS_UP_TO_DATE = "AL DIA"

INACTIVE_MESSAGE = "Socio inactivo. No tiene acceso a las instalaciones."
NO_MEMBERSHIP_MESSAGE = "No tiene membresía activa vigente. Por favor, renueve su membresía."
GRANTED_MESSAGE = "Socio con actividades al día. Acceso autorizado."


def balance_due_message(balance: Decimal) -> str:
    return f"Tiene saldo pendiente de {format_money(balance)}. Por favor, regularice su situación."


@dataclass(frozen=True)
class Decision:
    member_id: int
    member_number: str
    member_name: str
    dni: str
    access_granted: bool
    message: str
    status: str
    balance_due: Decimal | None = None
    valid_until: date | None = None
    activities: list[str] = field(default_factory=list)


def current_membership(member, day: date) -> Membership | None:
    return (
        Membership.objects.live()
        .covering(day)
        .filter(member=member)
        .order_by("-period_start", "-id")
        .first()
    )


def check_status(dni: str, *, today: date | None = None) -> Decision:
    member = find_member_by_dni(dni)
    today = today or timezone.localdate()
    identity = {
        "member_id": member.id,
        "member_number": member.member_number,
        "member_name": member.display_name,
        "dni": member.dni,
    }

    if not member.is_active:
        return Decision(
            **identity,
            access_granted=False,
            message=INACTIVE_MESSAGE,
            status=STATUS_INACTIVE,
        )

    membership = current_membership(member, today)
    if membership is None:
        return Decision(
            **identity,
            access_granted=False,
            message=NO_MEMBERSHIP_MESSAGE,
            status=STATUS_NO_MEMBERSHIP,
        )

    activity_names = [
        line.activity.name for line in membership.lines.select_related("activity").order_by("id")
    ]
    balance = get_membership_totals(membership).balance
    if balance > ZERO:
        return Decision(
            **identity,
            access_granted=False,
            message=balance_due_message(balance),
            status=STATUS_BALANCE_DUE,
            balance_due=balance,
            activities=activity_names,
        )

    return Decision(
        **identity,
        access_granted=True,
        message=GRANTED_MESSAGE,
        status=STATUS_UP_TO_DATE,
        valid_until=membership.period_end,
        activities=activity_names,
    )


def record_entry(dni: str, *, now=None, actor=None) -> Attendance:
    now = now or timezone.now()
    decision = check_status(dni, today=timezone.localdate(now))
    if not decision.access_granted:
        logger.info("Entry denied for member %s: %s", decision.member_number, decision.status)
        raise ValidationError(decision.message)

    with transaction.atomic():
        attendance = Attendance.objects.create(member_id=decision.member_id, entered_at=now)
        record_audit_event(
            "attendance.registered",
            message=f"Ingreso registrado para el socio {decision.member_number}.",
            actor=actor,
            member=attendance.member,
        )
    return attendance


def list_attendance(on_date: date | None = None, member_id: int | None = None):
    queryset = Attendance.objects.live().select_related("member")
    if on_date is not None:
        queryset = queryset.filter(entered_at__date=on_date)
    if member_id is not None:
        queryset = queryset.filter(member_id=member_id)
    return queryset.order_by("-entered_at", "-id")
