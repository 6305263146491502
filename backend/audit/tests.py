import shutil
import tempfile
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from members.services import create_member

from .backups import list_backups, prune_backups
from .models import AuditLog
from .services import record_audit_event


class AuditServiceTests(TestCase):
    def test_anonymous_actor_is_not_stored(self):
        member = create_member(first_name="Inés", last_name="Vidal", email="ines@example.com")

        log = record_audit_event("member.checked", member=member, metadata={"source": "test"})

        self.assertIsNone(log.actor)
        self.assertEqual(log.member, member)
        self.assertEqual(log.metadata, {"source": "test"})


class AuditLogApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.superadmin = User.objects.create_user(
            username="root",
            password="pass12345",
            role=User.Roles.SUPERADMIN,
        )
        self.admin = User.objects.create_user(
            username="admin",
            password="pass12345",
            role=User.Roles.ADMIN,
        )
        record_audit_event("activity.created", actor=self.admin)
        record_audit_event("payment.registered", actor=self.superadmin)

    def test_only_superadmin_reads_audit_log(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get("/api/audit-logs/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.superadmin)
        response = self.client.get("/api/audit-logs/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_filters_by_action_and_actor(self):
        self.client.force_authenticate(user=self.superadmin)

        response = self.client.get("/api/audit-logs/", {"action": "payment"})
        self.assertEqual([item["action"] for item in response.data], ["payment.registered"])

        response = self.client.get("/api/audit-logs/", {"actor_id": self.admin.id})
        self.assertEqual([item["actor_username"] for item in response.data], ["admin"])


class BackupCommandTests(TestCase):
    def setUp(self):
        self.backup_root = tempfile.mkdtemp()
        self.settings_override = override_settings(BACKUP_ROOT=Path(self.backup_root), BACKUP_KEEP=14)
        self.settings_override.enable()

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.backup_root, ignore_errors=True)
        super().tearDown()

    def _old_backup(self, stamp):
        path = Path(self.backup_root) / f"backup_{stamp}.json"
        path.write_text("[]", encoding="utf-8")
        return path

    def test_command_writes_snapshot_and_audit_entry(self):
        create_member(first_name="Inés", last_name="Vidal", email="ines@example.com")
        out = StringIO()

        call_command("backup_database", stdout=out)

        backups = list_backups()
        self.assertEqual(len(backups), 1)
        self.assertIn(backups[0].name, out.getvalue())
        content = (Path(self.backup_root) / backups[0].name).read_text(encoding="utf-8")
        self.assertIn("ines@example.com", content)
        self.assertTrue(AuditLog.objects.filter(action="backup.created").exists())

    def test_command_prunes_old_snapshots(self):
        self._old_backup("20200101_000000")
        self._old_backup("20200102_000000")
        self._old_backup("20200103_000000")

        call_command("backup_database", "--keep", "2", stdout=StringIO())

        names = [backup.name for backup in list_backups()]
        self.assertEqual(len(names), 2)
        self.assertIn("backup_20200103_000000.json", names)
        self.assertNotIn("backup_20200101_000000.json", names)

    def test_negative_keep_is_rejected(self):
        with self.assertRaises(CommandError):
            call_command("backup_database", "--keep", "-1", stdout=StringIO())

    def test_prune_keeps_newest(self):
        self._old_backup("20200101_000000")
        self._old_backup("20200102_000000")

        removed = prune_backups(1)

        self.assertEqual(removed, ["backup_20200101_000000.json"])

    def test_backup_endpoint_is_superadmin_only(self):
        client = APIClient()
        admin = User.objects.create_user(username="admin", password="pass12345", role=User.Roles.ADMIN)
        client.force_authenticate(user=admin)
        self.assertEqual(client.get("/api/backups/").status_code, status.HTTP_403_FORBIDDEN)

        superadmin = User.objects.create_user(
            username="root",
            password="pass12345",
            role=User.Roles.SUPERADMIN,
        )
        client.force_authenticate(user=superadmin)
        response = client.post("/api/backups/")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = client.get("/api/backups/")
        self.assertEqual(len(response.data), 1)
