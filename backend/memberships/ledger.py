"""
Membership billing ledger.

A membership is billed as a whole: its charge is the sum of the frozen prices
of its activity lines, and its paid amount is the sum of its live (non-voided)
payments. Neither figure is stored; every read derives them again from the
current rows.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from django.db import transaction
from django.utils import timezone

from activities.models import Activity
from audit.services import record_audit_event
from config.exceptions import ConflictError, NotFoundError, ValidationError
from members.models import Member

from .models import ZERO, Membership, MembershipActivity

logger = logging.getLogger(__name__)

MIN_PERIOD_YEAR = 2000
MAX_PERIOD_YEAR = 2100

ATTACH_BLOCKED_MESSAGE = (
    "No se puede asignar actividades a una membresía que ya tiene pagos registrados"
)
DETACH_BLOCKED_MESSAGE = (
    "No se puede remover actividades de una membresía que ya tiene pagos registrados"
)
DELETE_BLOCKED_MESSAGE = "No se puede eliminar una membresía que tiene pagos registrados"


@dataclass(frozen=True)
class MembershipTotals:
    total_charged: Decimal
    total_paid: Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_charged - self.total_paid

    @property
    def is_settled(self) -> bool:
        return self.total_charged <= self.total_paid


def compute_totals(lines: Iterable, payments: Iterable) -> MembershipTotals:
    """Derive the ledger figures from line and payment rows; voided payments are ignored."""
    total_charged = sum((line.price_at_attachment for line in lines), ZERO)
    total_paid = sum(
        (payment.amount for payment in payments if payment.deleted_at is None),
        ZERO,
    )
    return MembershipTotals(total_charged=total_charged, total_paid=total_paid)


def get_membership_totals(membership: Membership) -> MembershipTotals:
    lines = MembershipActivity.objects.filter(membership_id=membership.id)
    payments = membership.payments.live()
    return compute_totals(lines, payments)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


def validate_period(year: int, month: int) -> None:
    if not MIN_PERIOD_YEAR <= int(year) <= MAX_PERIOD_YEAR:
        raise ValidationError(
            f"El año del período debe estar entre {MIN_PERIOD_YEAR} y {MAX_PERIOD_YEAR}"
        )
    if not 1 <= int(month) <= 12:
        raise ValidationError("El mes del período debe estar entre 1 y 12")


def has_live_payments(membership: Membership) -> bool:
    return membership.payments.live().exists()


def get_live_membership(membership_id: int, *, for_update: bool = False) -> Membership:
    queryset = Membership.objects.live()
    if for_update:
        queryset = queryset.select_for_update()
    membership = queryset.filter(id=membership_id).first()
    if membership is None:
        raise NotFoundError("Membresía no encontrada")
    return membership


def _live_activities(activity_ids: Sequence[int]) -> list[Activity]:
    if len(set(activity_ids)) != len(activity_ids):
        raise ValidationError("La lista de actividades contiene actividades repetidas")
    activities_by_id = Activity.objects.live().in_bulk(list(activity_ids))
    missing = [activity_id for activity_id in activity_ids if activity_id not in activities_by_id]
    if missing:
        raise NotFoundError("Una o más actividades no existen")
    return [activities_by_id[activity_id] for activity_id in activity_ids]


def create_membership(
    member_id: int,
    year: int,
    month: int,
    activity_ids: Sequence[int],
    *,
    actor=None,
) -> Membership:
    validate_period(year, month)
    activity_ids = list(activity_ids or [])

    with transaction.atomic():
        # The member row lock serializes concurrent creations for the same period.
        member = Member.objects.live().select_for_update().filter(id=member_id).first()
        if member is None:
            raise NotFoundError("Socio no encontrado")

        if Membership.objects.live().filter(
            member=member,
            period_year=year,
            period_month=month,
        ).exists():
            raise ConflictError(
                f"Ya existe una membresía para este socio en el período {month:02d}/{year}"
            )

        activities = _live_activities(activity_ids)
        period_start, period_end = month_bounds(year, month)
        membership = Membership.objects.create(
            member=member,
            period_year=year,
            period_month=month,
            period_start=period_start,
            period_end=period_end,
        )
        MembershipActivity.objects.bulk_create(
            [
                MembershipActivity(
                    membership=membership,
                    activity=activity,
                    price_at_attachment=activity.price,
                )
                for activity in activities
            ]
        )
        record_audit_event(
            "membership.created",
            message=f"Membresía {month:02d}/{year} creada.",
            actor=actor,
            member=member,
            membership=membership,
            metadata={
                "activity_ids": [activity.id for activity in activities],
                "prices": {str(activity.id): str(activity.price) for activity in activities},
            },
        )

    logger.info(
        "Membership %s created for member %s (%02d/%s)",
        membership.id,
        member.member_number,
        month,
        year,
    )
    return membership


def attach_activity(membership_id: int, activity_id: int, *, actor=None) -> Membership:
    with transaction.atomic():
        membership = get_live_membership(membership_id, for_update=True)
        activity = Activity.objects.live().filter(id=activity_id).first()
        if activity is None:
            raise NotFoundError("Actividad no encontrada")
        if membership.lines.filter(activity_id=activity.id).exists():
            raise ConflictError("La actividad ya está asignada a esta membresía")
        if has_live_payments(membership):
            raise ConflictError(ATTACH_BLOCKED_MESSAGE)

        MembershipActivity.objects.create(
            membership=membership,
            activity=activity,
            price_at_attachment=activity.price,
        )
        membership.save(update_fields=["updated_at"])
        record_audit_event(
            "membership.activity_attached",
            message=f"Actividad {activity.name} asignada.",
            actor=actor,
            member=membership.member,
            membership=membership,
            metadata={"activity_id": activity.id, "price": str(activity.price)},
        )
    return membership


def detach_activity(membership_id: int, activity_id: int, *, actor=None) -> Membership:
    with transaction.atomic():
        membership = get_live_membership(membership_id, for_update=True)
        if has_live_payments(membership):
            raise ConflictError(DETACH_BLOCKED_MESSAGE)
        line = membership.lines.select_related("activity").filter(activity_id=activity_id).first()
        if line is None:
            raise ConflictError("La actividad no está asignada a esta membresía")

        line.delete()
        membership.save(update_fields=["updated_at"])
        record_audit_event(
            "membership.activity_detached",
            message=f"Actividad {line.activity.name} removida.",
            actor=actor,
            member=membership.member,
            membership=membership,
            metadata={
                "activity_id": activity_id,
                "price": str(line.price_at_attachment),
            },
        )
    return membership


def replace_activities(
    membership_id: int,
    activity_ids: Sequence[int],
    *,
    actor=None,
) -> Membership:
    """Make the membership's line set equal to ``activity_ids``.

    Activities already on the membership keep their frozen price; new ones are
    priced from the catalog now. Any change is refused once money has moved.
    """
    activity_ids = list(activity_ids or [])
    with transaction.atomic():
        membership = get_live_membership(membership_id, for_update=True)
        current_ids = set(membership.lines.values_list("activity_id", flat=True))
        if len(set(activity_ids)) != len(activity_ids):
            raise ValidationError("La lista de actividades contiene actividades repetidas")

        added_ids = [activity_id for activity_id in activity_ids if activity_id not in current_ids]
        removed_ids = sorted(current_ids - set(activity_ids))
        if not added_ids and not removed_ids:
            return membership
        if has_live_payments(membership):
            raise ConflictError(ATTACH_BLOCKED_MESSAGE if added_ids else DETACH_BLOCKED_MESSAGE)

        added = _live_activities(added_ids)
        membership.lines.filter(activity_id__in=removed_ids).delete()
        MembershipActivity.objects.bulk_create(
            [
                MembershipActivity(
                    membership=membership,
                    activity=activity,
                    price_at_attachment=activity.price,
                )
                for activity in added
            ]
        )
        membership.save(update_fields=["updated_at"])
        record_audit_event(
            "membership.activities_replaced",
            message="Actividades de la membresía actualizadas.",
            actor=actor,
            member=membership.member,
            membership=membership,
            metadata={"added": [a.id for a in added], "removed": removed_ids},
        )
    return membership


def delete_membership(membership_id: int, *, actor=None, now=None) -> bool:
    with transaction.atomic():
        membership = (
            Membership.objects.select_for_update().filter(id=membership_id).first()
        )
        if membership is None or membership.is_deleted:
            return False
        if has_live_payments(membership):
            raise ConflictError(DELETE_BLOCKED_MESSAGE)
        membership.soft_delete(now=now or timezone.now())
        record_audit_event(
            "membership.deleted",
            message=(
                f"Membresía {membership.period_month:02d}/{membership.period_year} eliminada."
            ),
            actor=actor,
            member=membership.member,
            membership=membership,
        )
    logger.info("Membership %s soft-deleted", membership_id)
    return True
