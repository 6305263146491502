from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.db import transaction

from audit.services import record_audit_event
from config.exceptions import ConflictError, NotFoundError, ValidationError

from .models import Activity

EDITABLE_FIELDS = ["name", "description", "price", "is_base_due"]


def get_live_activity(activity_id: int) -> Activity:
    activity = Activity.objects.live().filter(id=activity_id).first()
    if activity is None:
        raise NotFoundError("Actividad no encontrada")
    return activity


def _validate_activity(*, name: str, price, exclude_id: int | None = None) -> None:
    queryset = Activity.objects.live().filter(name__iexact=name)
    if exclude_id is not None:
        queryset = queryset.exclude(id=exclude_id)
    if queryset.exists():
        raise ConflictError("Ya existe una actividad con este nombre")
    if price is not None and Decimal(price) < 0:
        raise ValidationError("El precio no puede ser negativo")


def create_activity(*, actor=None, **data: Any) -> Activity:
    name = str(data.get("name") or "").strip()
    _validate_activity(name=name, price=data.get("price"))
    with transaction.atomic():
        activity = Activity.objects.create(
            name=name,
            description=data.get("description", ""),
            price=data["price"],
            is_base_due=data.get("is_base_due", False),
        )
        record_audit_event(
            "activity.created",
            message=f"Actividad {activity.name} creada.",
            actor=actor,
            metadata={"activity_id": activity.id, "price": str(activity.price)},
        )
    return activity


def update_activity(activity: Activity, *, actor=None, **data: Any) -> Activity:
    if "name" in data:
        data["name"] = str(data["name"] or "").strip()
    _validate_activity(
        name=data.get("name", activity.name),
        price=data.get("price"),
        exclude_id=activity.id,
    )
    previous_price = activity.price
    changed = [field for field in EDITABLE_FIELDS if field in data and getattr(activity, field) != data[field]]
    if not changed:
        return activity
    with transaction.atomic():
        for field in changed:
            setattr(activity, field, data[field])
        activity.save(update_fields=[*changed, "updated_at"])
        record_audit_event(
            "activity.updated",
            message=f"Actividad {activity.name} actualizada.",
            actor=actor,
            metadata={
                "activity_id": activity.id,
                "fields": changed,
                "price_before": str(previous_price),
                "price_after": str(activity.price),
            },
        )
    return activity


def delete_activity(activity: Activity, *, actor=None) -> bool:
    # Existing membership lines keep their price snapshot; nothing cascades.
    with transaction.atomic():
        if not activity.soft_delete():
            return False
        record_audit_event(
            "activity.deleted",
            message=f"Actividad {activity.name} eliminada.",
            actor=actor,
            metadata={"activity_id": activity.id},
        )
    return True
