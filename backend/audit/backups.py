"""Database snapshots written with ``dumpdata`` into ``BACKUP_ROOT``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from django.conf import settings
from django.core.management import call_command
from django.utils import timezone

from .services import record_audit_event

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup_"
BACKUP_SUFFIX = ".json"
EXCLUDED_MODELS = [
    "contenttypes",
    "auth.permission",
    "sessions",
    "admin.logentry",
    "authtoken.token",
]


@dataclass(frozen=True)
class BackupFile:
    name: str
    size_bytes: int
    created_at: datetime


def backup_root(output_dir: str | Path | None = None) -> Path:
    return Path(output_dir or settings.BACKUP_ROOT)


def list_backups(output_dir: str | Path | None = None) -> list[BackupFile]:
    root = backup_root(output_dir)
    if not root.exists():
        return []
    files = []
    for path in root.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
        stat = path.stat()
        files.append(
            BackupFile(
                name=path.name,
                size_bytes=stat.st_size,
                created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.get_current_timezone()),
            )
        )
    return sorted(files, key=lambda item: item.name, reverse=True)


def prune_backups(keep: int, output_dir: str | Path | None = None) -> list[str]:
    root = backup_root(output_dir)
    removed = []
    for backup in list_backups(root)[keep:]:
        (root / backup.name).unlink(missing_ok=True)
        removed.append(backup.name)
    return removed


def create_backup(
    *,
    output_dir: str | Path | None = None,
    keep: int | None = None,
    actor=None,
    now=None,
) -> BackupFile:
    root = backup_root(output_dir)
    root.mkdir(parents=True, exist_ok=True)
    stamp = timezone.localtime(now or timezone.now()).strftime("%Y%m%d_%H%M%S")
    path = root / f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"

    call_command(
        "dumpdata",
        exclude=EXCLUDED_MODELS,
        natural_foreign=True,
        indent=2,
        output=str(path),
        verbosity=0,
    )

    keep = settings.BACKUP_KEEP if keep is None else keep
    removed = prune_backups(keep, root) if keep > 0 else []
    size_bytes = path.stat().st_size
    record_audit_event(
        "backup.created",
        message=f"Backup {path.name} creado.",
        actor=actor,
        metadata={"file": path.name, "size_bytes": size_bytes, "pruned": removed},
    )
    logger.info("Database backup written to %s (%s bytes)", path, size_bytes)
    return next(item for item in list_backups(root) if item.name == path.name)
