from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from audit.models import AuditLog
from config.exceptions import ConflictError, NotFoundError

from .models import Member
from .services import (
    allocate_member_number,
    create_member,
    deactivate_member,
    delete_member,
    find_member_by_dni,
    format_member_number,
    reactivate_member,
    update_member,
)


class MemberServiceTests(TestCase):
    def _member(self, **overrides):
        data = {
            "first_name": "Carla",
            "last_name": "Núñez",
            "email": "carla@example.com",
            "dni": "30111222",
        }
        data.update(overrides)
        return create_member(**data)

    def test_member_numbers_are_sequential(self):
        first = self._member()
        second = self._member(email="otra@example.com", dni="30111223")

        self.assertRegex(first.member_number, r"^SOC-\d{4}$")
        first_value = int(first.member_number.split("-")[1])
        self.assertEqual(second.member_number, format_member_number(first_value + 1))

    def test_allocate_member_number_formats_prefix(self):
        self.assertRegex(allocate_member_number(), r"^SOC-\d{4}$")
        self.assertEqual(format_member_number(7), "SOC-0007")

    def test_names_are_normalized(self):
        member = self._member(first_name="  Carla   María ", last_name=" Núñez ")
        self.assertEqual(member.display_name, "Carla María Núñez")

    def test_duplicate_email_or_dni_conflicts(self):
        self._member()

        with self.assertRaises(ConflictError):
            self._member(dni="40000000")
        with self.assertRaises(ConflictError):
            self._member(email="nueva@example.com")

    def test_deleted_member_frees_email_and_dni(self):
        member = self._member()
        self.assertTrue(delete_member(member))
        self.assertFalse(delete_member(member))

        replacement = self._member()
        self.assertNotEqual(replacement.id, member.id)
        member.refresh_from_db()
        self.assertFalse(member.is_active)

    def test_find_member_by_dni(self):
        member = self._member()

        self.assertEqual(find_member_by_dni(" 30111222 "), member)
        with self.assertRaises(NotFoundError):
            find_member_by_dni("")

    def test_update_member_checks_uniqueness_and_records_fields(self):
        member = self._member()
        other = self._member(email="otro@example.com", dni="30999888")

        with self.assertRaises(ConflictError):
            update_member(other, email="carla@example.com")

        update_member(member, last_name="Núñez Ríos")
        log = AuditLog.objects.filter(action="member.updated").get()
        self.assertEqual(log.metadata["fields"], ["last_name"])

    def test_deactivate_and_reactivate(self):
        member = self._member()

        self.assertTrue(deactivate_member(member))
        self.assertFalse(deactivate_member(member))
        self.assertIsNotNone(member.left_at)

        self.assertTrue(reactivate_member(member))
        self.assertFalse(reactivate_member(member))
        self.assertIsNone(member.left_at)


class MemberApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username="admin",
            password="pass12345",
            role=User.Roles.ADMIN,
        )
        self.receptionist = User.objects.create_user(
            username="front",
            password="pass12345",
            role=User.Roles.RECEPTIONIST,
        )
        self.payload = {
            "first_name": "Bruno",
            "last_name": "Acosta",
            "email": "bruno@example.com",
            "dni": "35123456",
        }

    def test_admin_creates_member(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post("/api/members/", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["member_number"].startswith("SOC-"))
        self.assertTrue(response.data["is_active"])
        self.assertEqual(AuditLog.objects.get(action="member.created").actor, self.admin)

    def test_duplicate_email_returns_conflict(self):
        create_member(**self.payload)
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/members/",
            {**self.payload, "dni": "35999999"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["message"], "Ya existe un socio con este email")

    def test_invalid_dni_is_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/members/",
            {**self.payload, "dni": "35.123.456"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("dni", response.data["errors"])

    def test_receptionist_reads_but_cannot_write(self):
        member = create_member(**self.payload)
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.get("/api/members/", {"q": "acosta"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get(f"/api/members/by-number/{member.member_number}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], member.id)

        response = self.client.post("/api/members/", {**self.payload, "email": "x@example.com"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post(f"/api/members/{member.id}/deactivate/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_deactivate_and_active_count(self):
        member = create_member(**self.payload)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f"/api/members/{member.id}/deactivate/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["is_active"])

        response = self.client.get("/api/members/active-count/")
        self.assertEqual(response.data["total"], 0)

        response = self.client.get("/api/members/", {"is_active": "false"})
        self.assertEqual([item["id"] for item in response.data], [member.id])

        response = self.client.post(f"/api/members/{member.id}/reactivate/")
        self.assertTrue(response.data["is_active"])

    def test_delete_hides_member(self):
        member = create_member(**self.payload)
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/members/{member.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(Member.objects.filter(id=member.id).exists())

        response = self.client.get(f"/api/members/{member.id}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get(f"/api/members/by-number/{member.member_number}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
