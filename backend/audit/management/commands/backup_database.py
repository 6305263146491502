from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from audit.backups import create_backup


class Command(BaseCommand):
    help = "Write a JSON snapshot of the database and prune old snapshots."

    def add_arguments(self, parser):
        parser.add_argument(
            "--output-dir",
            default=None,
            help="Directory for the snapshot. Defaults to BACKUP_ROOT.",
        )
        parser.add_argument(
            "--keep",
            type=int,
            default=settings.BACKUP_KEEP,
            help="Number of most recent snapshots to keep (0 keeps all).",
        )

    def handle(self, *args, **options):
        keep = int(options["keep"])
        if keep < 0:
            raise CommandError("--keep must be >= 0.")

        backup = create_backup(output_dir=options["output_dir"], keep=keep)
        self.stdout.write(
            self.style.SUCCESS(f"Backup {backup.name} written ({backup.size_bytes} bytes).")
        )
