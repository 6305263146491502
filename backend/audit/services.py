from __future__ import annotations

from typing import Any

from .models import AuditLog


def record_audit_event(
    action: str,
    *,
    message: str = "",
    actor=None,
    member=None,
    membership=None,
    payment=None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    return AuditLog.objects.create(
        action=action,
        message=message,
        actor=actor if actor and actor.is_authenticated else None,
        member=member,
        membership=membership,
        payment=payment,
        metadata=metadata or {},
    )
