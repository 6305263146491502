from __future__ import annotations

from celery import shared_task
from django.core.management import call_command


@shared_task
def create_database_backup() -> None:
    call_command("backup_database")
