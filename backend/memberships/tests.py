from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from activities.models import Activity
from activities.services import delete_activity, update_activity
from config.exceptions import ConflictError, NotFoundError, ValidationError
from members.services import create_member
from payments.models import PaymentMethod
from payments.services import register_payment, void_payment

from .ledger import (
    ATTACH_BLOCKED_MESSAGE,
    DETACH_BLOCKED_MESSAGE,
    attach_activity,
    compute_totals,
    create_membership,
    delete_membership,
    detach_activity,
    get_membership_totals,
    replace_activities,
)
from .models import Membership


class LedgerTests(TestCase):
    def setUp(self):
        self.member = create_member(
            first_name="Lucía",
            last_name="Gómez",
            email="lucia@example.com",
            dni="30111222",
        )
        self.gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        self.pool = Activity.objects.create(name="Natación", price=Decimal("35.00"))
        self.cash = PaymentMethod.objects.get(name="Efectivo")

    def test_create_membership_sets_month_bounds_and_freezes_prices(self):
        membership = create_membership(self.member.id, 2024, 2, [self.gym.id, self.pool.id])

        self.assertEqual(membership.period_start, date(2024, 2, 1))
        self.assertEqual(membership.period_end, date(2024, 2, 29))
        prices = dict(membership.lines.values_list("activity__name", "price_at_attachment"))
        self.assertEqual(prices, {"Gym": Decimal("50.00"), "Natación": Decimal("35.00")})
        self.assertEqual(get_membership_totals(membership).total_charged, Decimal("85.00"))

    def test_catalog_price_change_does_not_alter_existing_lines(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])

        update_activity(self.gym, price=Decimal("80.00"))

        self.assertEqual(get_membership_totals(membership).total_charged, Decimal("50.00"))

    def test_deleted_activity_keeps_line_snapshot(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])

        delete_activity(self.gym)

        self.assertEqual(get_membership_totals(membership).total_charged, Decimal("50.00"))
        with self.assertRaises(NotFoundError):
            create_membership(self.member.id, 2025, 12, [self.gym.id])

    def test_empty_activity_list_is_allowed(self):
        membership = create_membership(self.member.id, 2025, 11, [])

        totals = get_membership_totals(membership)
        self.assertEqual(totals.total_charged, Decimal("0.00"))
        self.assertTrue(totals.is_settled)

    def test_rejects_duplicate_and_missing_activities(self):
        with self.assertRaises(ValidationError):
            create_membership(self.member.id, 2025, 11, [self.gym.id, self.gym.id])
        with self.assertRaises(NotFoundError):
            create_membership(self.member.id, 2025, 11, [self.gym.id, 999999])
        self.assertFalse(Membership.objects.exists())

    def test_rejects_invalid_period_and_unknown_member(self):
        with self.assertRaises(ValidationError):
            create_membership(self.member.id, 2025, 13, [])
        with self.assertRaises(NotFoundError):
            create_membership(999999, 2025, 11, [])

    def test_duplicate_period_conflicts_until_first_is_deleted(self):
        first = create_membership(self.member.id, 2025, 11, [self.gym.id])

        with self.assertRaises(ConflictError) as ctx:
            create_membership(self.member.id, 2025, 11, [self.pool.id])
        self.assertIn("11/2025", str(ctx.exception.detail))

        self.assertTrue(delete_membership(first.id))
        second = create_membership(self.member.id, 2025, 11, [self.pool.id])
        self.assertNotEqual(first.id, second.id)

    def test_delete_membership_with_payments_conflicts(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        register_payment(membership.id, self.cash.id, Decimal("10.00"))

        with self.assertRaises(ConflictError):
            delete_membership(membership.id)
        membership.refresh_from_db()
        self.assertIsNone(membership.deleted_at)

    def test_delete_membership_twice_returns_false(self):
        membership = create_membership(self.member.id, 2025, 11, [])

        self.assertTrue(delete_membership(membership.id))
        self.assertFalse(delete_membership(membership.id))
        self.assertFalse(delete_membership(999999))

    def test_attach_and_detach_before_any_payment(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])

        attach_activity(membership.id, self.pool.id)
        self.assertEqual(get_membership_totals(membership).total_charged, Decimal("85.00"))

        detach_activity(membership.id, self.gym.id)
        self.assertEqual(get_membership_totals(membership).total_charged, Decimal("35.00"))

    def test_attach_existing_line_conflicts(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])

        with self.assertRaises(ConflictError) as ctx:
            attach_activity(membership.id, self.gym.id)
        self.assertEqual(str(ctx.exception.detail), "La actividad ya está asignada a esta membresía")

    def test_detach_missing_line_conflicts(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])

        with self.assertRaises(ConflictError) as ctx:
            detach_activity(membership.id, self.pool.id)
        self.assertEqual(str(ctx.exception.detail), "La actividad no está asignada a esta membresía")

    def test_lines_are_frozen_once_a_payment_exists(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        register_payment(membership.id, self.cash.id, Decimal("10.00"))

        with self.assertRaises(ConflictError) as attach_ctx:
            attach_activity(membership.id, self.pool.id)
        self.assertEqual(str(attach_ctx.exception.detail), ATTACH_BLOCKED_MESSAGE)

        with self.assertRaises(ConflictError) as detach_ctx:
            detach_activity(membership.id, self.gym.id)
        self.assertEqual(str(detach_ctx.exception.detail), DETACH_BLOCKED_MESSAGE)
        self.assertEqual(membership.lines.count(), 1)

    def test_voiding_the_only_payment_unfreezes_lines(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        receipt = register_payment(membership.id, self.cash.id, Decimal("10.00"))
        void_payment(receipt.payment_id)

        attach_activity(membership.id, self.pool.id)
        self.assertEqual(membership.lines.count(), 2)

    def test_replace_activities_keeps_existing_prices(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        update_activity(self.gym, price=Decimal("70.00"))

        replace_activities(membership.id, [self.gym.id, self.pool.id])

        prices = dict(membership.lines.values_list("activity__name", "price_at_attachment"))
        self.assertEqual(prices, {"Gym": Decimal("50.00"), "Natación": Decimal("35.00")})

    def test_replace_activities_after_payment_conflicts(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        register_payment(membership.id, self.cash.id, Decimal("10.00"))

        replace_activities(membership.id, [self.gym.id])
        with self.assertRaises(ConflictError):
            replace_activities(membership.id, [self.pool.id])

    def test_balance_is_charged_minus_live_payments(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id, self.pool.id])
        first = register_payment(membership.id, self.cash.id, Decimal("20.00"))
        register_payment(membership.id, self.cash.id, Decimal("15.00"))
        void_payment(first.payment_id)

        totals = get_membership_totals(membership)
        self.assertEqual(totals.total_paid, Decimal("15.00"))
        self.assertEqual(totals.balance, totals.total_charged - totals.total_paid)

        annotated = Membership.objects.with_totals().get(id=membership.id)
        self.assertEqual(annotated.total_charged, Decimal("85.00"))
        self.assertEqual(annotated.total_paid, Decimal("15.00"))
        self.assertEqual(annotated.balance, Decimal("70.00"))

    def test_compute_totals_ignores_voided_rows(self):
        class Row:
            def __init__(self, amount, deleted_at=None):
                self.amount = amount
                self.deleted_at = deleted_at

        class Line:
            def __init__(self, price):
                self.price_at_attachment = price

        totals = compute_totals(
            [Line(Decimal("50.00"))],
            [Row(Decimal("30.00")), Row(Decimal("20.00"), deleted_at=timezone.now())],
        )
        self.assertEqual(totals.balance, Decimal("20.00"))
        self.assertFalse(totals.is_settled)


class MembershipApiTests(TestCase):
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
        self.member = create_member(
            first_name="Martín",
            last_name="Pérez",
            email="martin@example.com",
            dni="28999111",
        )
        self.gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        self.pool = Activity.objects.create(name="Natación", price=Decimal("35.00"))

    def test_admin_creates_membership(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/memberships/",
            {
                "member_id": self.member.id,
                "period_year": 2025,
                "period_month": 11,
                "activity_ids": [self.gym.id],
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["total_charged"], "50.00")
        self.assertEqual(response.data["balance"], "50.00")
        self.assertFalse(response.data["is_settled"])
        self.assertEqual(response.data["activities"][0]["name"], "Gym")

    def test_duplicate_period_returns_conflict_message(self):
        create_membership(self.member.id, 2025, 11, [])
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/api/memberships/",
            {"member_id": self.member.id, "period_year": 2025, "period_month": 11},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn("11/2025", response.data["message"])

    def test_receptionist_cannot_create_but_can_assign(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.post(
            "/api/memberships/",
            {"member_id": self.member.id, "period_year": 2025, "period_month": 12},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(
            "/api/memberships/assign-activity/",
            {"membership_id": membership.id, "activity_id": self.pool.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_charged"], "85.00")

    def test_remove_activity_after_payment_is_rejected(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        cash = PaymentMethod.objects.get(name="Efectivo")
        register_payment(membership.id, cash.id, Decimal("10.00"))
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.post(
            "/api/memberships/remove-activity/",
            {"membership_id": membership.id, "activity_id": self.gym.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["message"], DETACH_BLOCKED_MESSAGE)

    def test_list_filters_unpaid_memberships(self):
        unpaid = create_membership(self.member.id, 2025, 11, [self.gym.id])
        create_membership(self.member.id, 2025, 12, [])
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/memberships/", {"only_unpaid": "true"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data], [unpaid.id])

        response = self.client.get("/api/memberships/", {"year": 2025, "month": 12})
        self.assertEqual(len(response.data), 1)

        response = self.client.get("/api/memberships/", {"page": 1, "page_size": 1})
        self.assertEqual(response.data["count"], 2)

    def test_list_rejects_malformed_filters(self):
        self.client.force_authenticate(user=self.admin)

        for params in [
            {"date_from": "not-a-date"},
            {"date_to": "2025-13-40"},
            {"month": "13"},
            {"member_id": "abc"},
            {"validity": "someday"},
        ]:
            response = self.client.get("/api/memberships/", params)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, params)
            self.assertIn(next(iter(params)), response.data["errors"])

    def test_list_filters_by_period_dates(self):
        november = create_membership(self.member.id, 2025, 11, [])
        create_membership(self.member.id, 2025, 12, [])
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(
            "/api/memberships/",
            {"date_from": "2025-11-01", "date_to": "2025-11-30"},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data], [november.id])

    def test_put_replaces_activity_set(self):
        membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            f"/api/memberships/{membership.id}/",
            {"activity_ids": [self.pool.id]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["name"] for item in response.data["activities"]], ["Natación"])

    def test_delete_and_history(self):
        membership = create_membership(self.member.id, 2025, 11, [])
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(f"/api/memberships/{membership.id}/history/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]["history_type"], "+")

        response = self.client.delete(f"/api/memberships/{membership.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.delete(f"/api/memberships/{membership.id}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get("/api/memberships/count/")
        self.assertEqual(response.data["total"], 0)
