from datetime import date, datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from activities.models import Activity
from config.exceptions import NotFoundError, ValidationError
from members.services import create_member, deactivate_member, delete_member
from memberships.ledger import create_membership, delete_membership
from payments.models import PaymentMethod
from payments.services import register_payment

from .gate import (
    GRANTED_MESSAGE,
    INACTIVE_MESSAGE,
    NO_MEMBERSHIP_MESSAGE,
    STATUS_BALANCE_DUE,
    STATUS_INACTIVE,
    STATUS_NO_MEMBERSHIP,
    STATUS_UP_TO_DATE,
    check_status,
    list_attendance,
    record_entry,
)
from .models import Attendance

TODAY = date(2025, 11, 15)


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class AttendanceGateTests(TestCase):
    def setUp(self):
        self.member = create_member(
            first_name="Valentina",
            last_name="Herrera",
            email="valentina@example.com",
            dni="30111222",
        )
        self.gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        self.pool = Activity.objects.create(name="Natación", price=Decimal("30.00"))
        self.cash = PaymentMethod.objects.get(name="Efectivo")

    def _paid_membership(self, year=2025, month=11):
        membership = create_membership(self.member.id, year, month, [self.gym.id, self.pool.id])
        register_payment(membership.id, self.cash.id, Decimal("80.00"))
        return membership

    def test_unknown_dni_is_not_found(self):
        with self.assertRaises(NotFoundError) as ctx:
            check_status("99999999", today=TODAY)
        self.assertEqual(str(ctx.exception.detail), "No se encontró un socio con DNI 99999999")

    def test_deleted_member_is_not_found(self):
        delete_member(self.member)

        with self.assertRaises(NotFoundError):
            check_status("30111222", today=TODAY)

    def test_inactive_member_is_denied_even_when_paid(self):
        self._paid_membership()
        deactivate_member(self.member)

        decision = check_status("30111222", today=TODAY)

        self.assertFalse(decision.access_granted)
        self.assertEqual(decision.status, STATUS_INACTIVE)
        self.assertEqual(decision.message, INACTIVE_MESSAGE)
        self.assertEqual(decision.member_number, self.member.member_number)

    def test_no_membership_covering_today(self):
        self._paid_membership(2025, 10)

        decision = check_status("30111222", today=TODAY)

        self.assertFalse(decision.access_granted)
        self.assertEqual(decision.status, STATUS_NO_MEMBERSHIP)
        self.assertEqual(decision.message, NO_MEMBERSHIP_MESSAGE)

    def test_deleted_membership_does_not_count(self):
        membership = create_membership(self.member.id, 2025, 11, [])
        delete_membership(membership.id)

        decision = check_status("30111222", today=TODAY)

        self.assertEqual(decision.status, STATUS_NO_MEMBERSHIP)

    def test_balance_due_is_denied_with_amount(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id, self.pool.id])
        register_payment(membership.id, self.cash.id, Decimal("30.00"))

        decision = check_status("30111222", today=TODAY)

        self.assertFalse(decision.access_granted)
        self.assertEqual(decision.status, STATUS_BALANCE_DUE)
        self.assertEqual(decision.balance_due, Decimal("50.00"))
        self.assertEqual(
            decision.message,
            "Tiene saldo pendiente de $50.00. Por favor, regularice su situación.",
        )
        self.assertEqual(decision.activities, ["Gym", "Natación"])

    def test_fully_paid_membership_is_granted(self):
        membership = self._paid_membership()

        decision = check_status("30111222", today=TODAY)

        self.assertTrue(decision.access_granted)
        self.assertEqual(decision.status, STATUS_UP_TO_DATE)
        self.assertEqual(decision.message, GRANTED_MESSAGE)
        self.assertEqual(decision.valid_until, membership.period_end)
        self.assertEqual(decision.valid_until, date(2025, 11, 30))
        self.assertEqual(decision.activities, ["Gym", "Natación"])
        self.assertIsNone(decision.balance_due)

    def test_period_bounds_are_inclusive(self):
        self._paid_membership()

        self.assertTrue(check_status("30111222", today=date(2025, 11, 1)).access_granted)
        self.assertTrue(check_status("30111222", today=date(2025, 11, 30)).access_granted)
        self.assertFalse(check_status("30111222", today=date(2025, 12, 1)).access_granted)

    def test_record_entry_requires_granted_decision(self):
        create_membership(self.member.id, 2025, 11, [self.gym.id])

        with self.assertRaises(ValidationError) as ctx:
            record_entry("30111222", now=_aware(2025, 11, 15, 18, 0))

        self.assertEqual(
            str(ctx.exception.detail),
            "Tiene saldo pendiente de $50.00. Por favor, regularice su situación.",
        )
        self.assertFalse(Attendance.objects.exists())

    def test_record_entry_allows_repeated_check_ins(self):
        self._paid_membership()

        first = record_entry("30111222", now=_aware(2025, 11, 15, 9, 0))
        second = record_entry("30111222", now=_aware(2025, 11, 15, 19, 0))

        self.assertEqual(first.member_id, self.member.id)
        self.assertEqual(
            list(list_attendance(on_date=date(2025, 11, 15))),
            [second, first],
        )
        self.assertEqual(list(list_attendance(on_date=date(2025, 11, 16))), [])
        self.assertEqual(list_attendance(member_id=self.member.id).count(), 2)


class AttendanceApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.receptionist = User.objects.create_user(
            username="front",
            password="pass12345",
            role=User.Roles.RECEPTIONIST,
        )
        self.member = create_member(
            first_name="Tomás",
            last_name="Ibarra",
            email="tomas@example.com",
            dni="34666777",
        )
        gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        today = timezone.localdate()
        self.membership = create_membership(self.member.id, today.year, today.month, [gym.id])
        self.cash = PaymentMethod.objects.get(name="Efectivo")

    def test_verify_requires_authentication(self):
        response = self.client.get("/api/attendance/verify/34666777/")
        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])

    def test_verify_and_register_flow(self):
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.get("/api/attendance/verify/34666777/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["access_granted"])
        self.assertEqual(response.data["status"], STATUS_BALANCE_DUE)
        self.assertEqual(response.data["balance_due"], "50.00")

        response = self.client.post("/api/attendance/register/34666777/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("saldo pendiente", response.data["message"])

        register_payment(self.membership.id, self.cash.id, Decimal("50.00"))

        response = self.client.post("/api/attendance/register/34666777/")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["member_number"], self.member.member_number)

        response = self.client.get("/api/attendance/", {"member_id": self.member.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_unknown_dni_returns_not_found(self):
        self.client.force_authenticate(user=self.receptionist)
        response = self.client.get("/api/attendance/verify/11111111/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "No se encontró un socio con DNI 11111111")

    def test_list_rejects_malformed_date(self):
        self.client.force_authenticate(user=self.receptionist)
        response = self.client.get("/api/attendance/", {"date": "not-a-date"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
