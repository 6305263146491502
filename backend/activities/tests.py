from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from config.exceptions import ConflictError, ValidationError

from .models import Activity
from .services import create_activity, delete_activity, update_activity


class ActivityServiceTests(TestCase):
    def test_name_is_unique_among_live_activities(self):
        gym = create_activity(name="Gym", price=Decimal("50.00"))

        with self.assertRaises(ConflictError):
            create_activity(name="gym", price=Decimal("10.00"))

        delete_activity(gym)
        again = create_activity(name="Gym", price=Decimal("55.00"))
        self.assertNotEqual(again.id, gym.id)

    def test_negative_price_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_activity(name="Yoga", price=Decimal("-1.00"))

        yoga = create_activity(name="Yoga", price=Decimal("0.00"))
        with self.assertRaises(ValidationError):
            update_activity(yoga, price=Decimal("-0.01"))

    def test_update_without_changes_is_noop(self):
        yoga = create_activity(name="Yoga", price=Decimal("20.00"))
        updated_at = yoga.updated_at

        update_activity(yoga, name="Yoga", price=Decimal("20.00"))

        yoga.refresh_from_db()
        self.assertEqual(yoga.updated_at, updated_at)


class ActivityApiTests(TestCase):
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

    def test_admin_creates_activity(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/activities/",
            {"name": "Natación", "price": "35.00", "is_base_due": False},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["price"], "35.00")

    def test_duplicate_name_returns_conflict(self):
        create_activity(name="Natación", price=Decimal("35.00"))
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/activities/",
            {"name": "Natación", "price": "40.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["message"], "Ya existe una actividad con este nombre")

    def test_negative_price_returns_message(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/activities/",
            {"name": "Boxeo", "price": "-5.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "El precio no puede ser negativo")

    def test_short_name_is_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post("/api/activities/", {"name": "Ab", "price": "5.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("name", response.data["errors"])

    def test_receptionist_reads_but_cannot_write(self):
        create_activity(name="Gym", price=Decimal("50.00"))
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.get("/api/activities/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.post("/api/activities/", {"name": "Yoga", "price": "10.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_is_soft(self):
        gym = create_activity(name="Gym", price=Decimal("50.00"))
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/activities/{gym.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertIsNotNone(Activity.objects.get(id=gym.id).deleted_at)
        self.assertEqual(self.client.get("/api/activities/").data, [])
