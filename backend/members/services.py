from __future__ import annotations

import logging
from typing import Any

from django.db import transaction
from django.utils import timezone

from audit.services import record_audit_event
from config.exceptions import ConflictError, NotFoundError

from .models import MEMBER_NUMBER_PREFIX, Member, MemberNumberCounter

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ["first_name", "last_name", "email", "dni", "date_of_birth"]


def format_member_number(value: int, prefix: str = MEMBER_NUMBER_PREFIX) -> str:
    return f"{prefix}-{value:04d}"


def allocate_member_number(prefix: str = MEMBER_NUMBER_PREFIX) -> str:
    with transaction.atomic():
        counter, _ = MemberNumberCounter.objects.select_for_update().get_or_create(prefix=prefix)
        value = counter.next_value
        counter.next_value = value + 1
        counter.save(update_fields=["next_value", "updated_at"])
    return format_member_number(value, prefix)


def _ensure_unique_contact(*, email: str, dni: str, exclude_id: int | None = None) -> None:
    live_members = Member.objects.live()
    if exclude_id is not None:
        live_members = live_members.exclude(id=exclude_id)
    if email and live_members.filter(email__iexact=email).exists():
        raise ConflictError("Ya existe un socio con este email")
    if dni and live_members.filter(dni=dni).exists():
        raise ConflictError("Ya existe un socio con este DNI")


def get_live_member(member_id: int) -> Member:
    member = Member.objects.live().filter(id=member_id).first()
    if member is None:
        raise NotFoundError("Socio no encontrado")
    return member


def find_member_by_dni(dni: str) -> Member:
    normalized = str(dni or "").strip()
    member = Member.objects.live().filter(dni=normalized).first() if normalized else None
    if member is None:
        raise NotFoundError(f"No se encontró un socio con DNI {normalized}")
    return member


def create_member(*, actor=None, now=None, **data: Any) -> Member:
    email = str(data.get("email") or "").strip()
    dni = str(data.get("dni") or "").strip()
    _ensure_unique_contact(email=email, dni=dni)

    with transaction.atomic():
        member = Member.objects.create(
            member_number=allocate_member_number(),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=email,
            dni=dni,
            date_of_birth=data.get("date_of_birth"),
            is_active=True,
            joined_at=now or timezone.now(),
        )
        record_audit_event(
            "member.created",
            message=f"Socio {member.member_number} creado.",
            actor=actor,
            member=member,
        )
    logger.info("Member %s created", member.member_number)
    return member


def update_member(member: Member, *, actor=None, **data: Any) -> Member:
    email = str(data.get("email", member.email) or "").strip()
    dni = str(data.get("dni", member.dni) or "").strip()
    _ensure_unique_contact(email=email, dni=dni, exclude_id=member.id)

    changed = []
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "email":
            value = email
        elif field == "dni":
            value = dni
        if getattr(member, field) != value:
            setattr(member, field, value)
            changed.append(field)

    if not changed:
        return member

    with transaction.atomic():
        member.save(update_fields=[*changed, "updated_at"])
        record_audit_event(
            "member.updated",
            message=f"Socio {member.member_number} actualizado.",
            actor=actor,
            member=member,
            metadata={"fields": changed},
        )
    return member


def deactivate_member(member: Member, *, actor=None, now=None) -> bool:
    if member.is_deleted or not member.is_active:
        return False
    with transaction.atomic():
        member.is_active = False
        member.left_at = now or timezone.now()
        member.save(update_fields=["is_active", "left_at", "updated_at"])
        record_audit_event(
            "member.deactivated",
            message=f"Socio {member.member_number} dado de baja.",
            actor=actor,
            member=member,
        )
    return True


def reactivate_member(member: Member, *, actor=None) -> bool:
    if member.is_deleted or member.is_active:
        return False
    with transaction.atomic():
        member.is_active = True
        member.left_at = None
        member.save(update_fields=["is_active", "left_at", "updated_at"])
        record_audit_event(
            "member.reactivated",
            message=f"Socio {member.member_number} reactivado.",
            actor=actor,
            member=member,
        )
    return True


def delete_member(member: Member, *, actor=None, now=None) -> bool:
    now = now or timezone.now()
    with transaction.atomic():
        if not member.soft_delete(now=now):
            return False
        if member.is_active:
            member.is_active = False
            member.left_at = now
            member.save(update_fields=["is_active", "left_at", "updated_at"])
        record_audit_event(
            "member.deleted",
            message=f"Socio {member.member_number} eliminado.",
            actor=actor,
            member=member,
        )
    return True
