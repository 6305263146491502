from datetime import date, datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from activities.models import Activity
from audit.models import AuditLog
from config.exceptions import NotFoundError, ValidationError
from members.services import create_member
from memberships.ledger import attach_activity, create_membership, detach_activity, get_membership_totals

from .models import Payment, PaymentMethod, format_receipt_number
from .receipts import format_money, generate_receipt, period_label
from .services import payment_statistics, register_payment, void_payment


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class PaymentRegisterTests(TestCase):
    def setUp(self):
        self.member = create_member(
            first_name="Sofía",
            last_name="Ramírez",
            email="sofia@example.com",
            dni="31222333",
        )
        self.gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        self.membership = create_membership(self.member.id, 2025, 11, [self.gym.id])
        self.cash = PaymentMethod.objects.get(name="Efectivo")

    def test_partial_then_full_payment_receipts(self):
        first = register_payment(self.membership.id, self.cash.id, Decimal("30.00"))

        self.assertEqual(first.total_charged, Decimal("50.00"))
        self.assertEqual(first.total_paid_before, Decimal("0.00"))
        self.assertEqual(first.amount, Decimal("30.00"))
        self.assertEqual(first.new_balance, Decimal("20.00"))
        self.assertFalse(first.is_settled)
        self.assertEqual(first.period_label, "Noviembre 2025")
        self.assertEqual(first.processed_by, "Sistema")

        second = register_payment(self.membership.id, self.cash.id, Decimal("20.00"))

        self.assertEqual(second.total_paid_before, Decimal("30.00"))
        self.assertEqual(second.amount, Decimal("20.00"))
        self.assertEqual(second.new_balance, Decimal("0.00"))
        self.assertTrue(second.is_settled)

    def test_overpayment_is_rejected_without_writing(self):
        register_payment(self.membership.id, self.cash.id, Decimal("30.00"))

        with self.assertRaises(ValidationError) as ctx:
            register_payment(self.membership.id, self.cash.id, Decimal("20.01"))

        self.assertEqual(
            str(ctx.exception.detail),
            "El monto excede el saldo pendiente de $20.00. No se permite sobrepago.",
        )
        self.assertEqual(Payment.objects.count(), 1)

    def test_exact_payoff_is_allowed(self):
        receipt = register_payment(self.membership.id, self.cash.id, "50.00")

        self.assertEqual(receipt.new_balance, Decimal("0.00"))
        self.assertTrue(get_membership_totals(self.membership).is_settled)

    def test_non_positive_amount_is_rejected(self):
        for amount in [Decimal("0.00"), Decimal("-5.00")]:
            with self.assertRaises(ValidationError):
                register_payment(self.membership.id, self.cash.id, amount)
        self.assertFalse(Payment.objects.exists())

    def test_settled_membership_accepts_no_more_payments(self):
        register_payment(self.membership.id, self.cash.id, Decimal("50.00"))

        with self.assertRaises(ValidationError):
            register_payment(self.membership.id, self.cash.id, Decimal("0.01"))

    def test_unknown_or_inactive_method_is_not_found(self):
        self.cash.is_active = False
        self.cash.save(update_fields=["is_active"])

        with self.assertRaises(NotFoundError):
            register_payment(self.membership.id, self.cash.id, Decimal("10.00"))
        with self.assertRaises(NotFoundError):
            register_payment(self.membership.id, 999999, Decimal("10.00"))

    def test_unknown_membership_is_not_found(self):
        with self.assertRaises(NotFoundError):
            register_payment(999999, self.cash.id, Decimal("10.00"))

    def test_paid_at_can_be_supplied(self):
        paid_at = _aware(2025, 11, 3, 10, 30)
        receipt = register_payment(self.membership.id, self.cash.id, Decimal("10.00"), paid_at=paid_at)

        self.assertEqual(receipt.paid_at, paid_at)
        self.assertEqual(receipt.receipt_number, format_receipt_number(receipt.payment_id, paid_at))
        self.assertTrue(receipt.receipt_number.endswith("-2025"))

    def test_registration_writes_audit_entry(self):
        receipt = register_payment(self.membership.id, self.cash.id, Decimal("10.00"))

        log = AuditLog.objects.get(action="payment.registered")
        self.assertEqual(log.payment_id, receipt.payment_id)
        self.assertEqual(log.metadata["balance_before"], "50.00")

    def test_void_is_terminal_and_idempotent(self):
        receipt = register_payment(self.membership.id, self.cash.id, Decimal("30.00"))

        self.assertTrue(void_payment(receipt.payment_id))
        self.assertFalse(void_payment(receipt.payment_id))
        self.assertFalse(void_payment(999999))

        self.assertEqual(get_membership_totals(self.membership).balance, Decimal("50.00"))
        with self.assertRaises(NotFoundError):
            generate_receipt(receipt.payment_id)

        again = register_payment(self.membership.id, self.cash.id, Decimal("50.00"))
        self.assertEqual(again.total_paid_before, Decimal("0.00"))

    def test_receipt_reflects_current_lines(self):
        pool = Activity.objects.create(name="Natación", price=Decimal("35.00"))
        other = create_membership(self.member.id, 2025, 12, [self.gym.id, pool.id])
        receipt = register_payment(other.id, self.cash.id, Decimal("10.00"))
        void_payment(receipt.payment_id)
        detach_activity(other.id, pool.id)
        attach_activity(other.id, pool.id)
        fresh = register_payment(other.id, self.cash.id, Decimal("10.00"))

        self.assertEqual(generate_receipt(fresh.payment_id).total_charged, Decimal("85.00"))
        self.assertEqual([line.name for line in fresh.activities], ["Gym", "Natación"])


class ReceiptFormattingTests(TestCase):
    def test_format_money(self):
        self.assertEqual(format_money(Decimal("20")), "$20.00")
        self.assertEqual(format_money(Decimal("1234.5")), "$1,234.50")

    def test_period_label(self):
        self.assertEqual(period_label(2025, 1), "Enero 2025")
        self.assertEqual(period_label(2024, 12), "Diciembre 2024")

    def test_receipt_number(self):
        self.assertEqual(format_receipt_number(42, _aware(2025, 6, 1, 12, 0)), "PAG-000042-2025")


class PaymentStatisticsTests(TestCase):
    def setUp(self):
        self.member = create_member(
            first_name="Diego",
            last_name="Suárez",
            email="diego@example.com",
            dni="32444555",
        )
        gym = Activity.objects.create(name="Gym", price=Decimal("100.00"))
        self.november = create_membership(self.member.id, 2025, 11, [gym.id])
        self.december = create_membership(self.member.id, 2025, 12, [gym.id])
        self.cash = PaymentMethod.objects.get(name="Efectivo")
        self.transfer = PaymentMethod.objects.get(name="Transferencia")

    def test_statistics_aggregate_live_payments(self):
        register_payment(self.november.id, self.cash.id, Decimal("40.00"), paid_at=_aware(2025, 11, 5, 10, 0))
        register_payment(self.november.id, self.transfer.id, Decimal("60.00"), paid_at=_aware(2025, 11, 20, 10, 0))
        voided = register_payment(self.december.id, self.cash.id, Decimal("25.00"), paid_at=_aware(2025, 11, 20, 11, 0))
        void_payment(voided.payment_id)
        register_payment(self.december.id, self.cash.id, Decimal("30.00"), paid_at=_aware(2025, 12, 1, 9, 0))

        stats = payment_statistics(date(2025, 11, 1), date(2025, 11, 30), today=date(2025, 11, 20))

        self.assertEqual(stats["total_collected"], Decimal("100.00"))
        self.assertEqual(stats["payment_count"], 2)
        self.assertEqual(stats["collected_today"], Decimal("60.00"))
        self.assertEqual(stats["collected_this_month"], Decimal("100.00"))
        self.assertEqual(stats["total_pending"], Decimal("70.00"))
        self.assertEqual(
            {row["method"]: row["total"] for row in stats["by_method"]},
            {"Efectivo": Decimal("40.00"), "Transferencia": Decimal("60.00")},
        )
        self.assertEqual([row["date"] for row in stats["by_day"]], [date(2025, 11, 5), date(2025, 11, 20)])


class PaymentApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username="admin",
            password="pass12345",
            role=User.Roles.ADMIN,
            first_name="Ana",
            last_name="Torres",
        )
        self.receptionist = User.objects.create_user(
            username="front",
            password="pass12345",
            role=User.Roles.RECEPTIONIST,
        )
        member = create_member(
            first_name="Julián",
            last_name="Castro",
            email="julian@example.com",
            dni="33555666",
        )
        gym = Activity.objects.create(name="Gym", price=Decimal("50.00"))
        self.membership = create_membership(member.id, 2025, 11, [gym.id])
        self.cash = PaymentMethod.objects.get(name="Efectivo")

    def _pay(self, amount):
        return self.client.post(
            "/api/payments/",
            {
                "membership_id": self.membership.id,
                "payment_method_id": self.cash.id,
                "amount": amount,
            },
            format="json",
        )

    def test_admin_registers_payment_and_gets_receipt(self):
        self.client.force_authenticate(user=self.admin)
        response = self._pay("30.00")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["receipt_number"].startswith("PAG-"))
        self.assertEqual(response.data["total_paid_before"], "0.00")
        self.assertEqual(response.data["new_balance"], "20.00")
        self.assertFalse(response.data["is_settled"])
        self.assertEqual(response.data["processed_by"], "Ana Torres")

        receipt = self.client.get(f"/api/payments/{response.data['payment_id']}/receipt/")
        self.assertEqual(receipt.status_code, status.HTTP_200_OK)
        self.assertEqual(receipt.data["receipt_number"], response.data["receipt_number"])

    def test_overpayment_returns_message(self):
        self.client.force_authenticate(user=self.admin)
        response = self._pay("50.01")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data["message"],
            "El monto excede el saldo pendiente de $50.00. No se permite sobrepago.",
        )

    def test_receptionist_can_read_but_not_register(self):
        register_payment(self.membership.id, self.cash.id, Decimal("10.00"))
        self.client.force_authenticate(user=self.receptionist)

        self.assertEqual(self._pay("10.00").status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get("/api/payments/", {"membership_id": self.membership.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(
            self.client.get("/api/payments/statistics/").status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_void_twice_returns_not_found(self):
        receipt = register_payment(self.membership.id, self.cash.id, Decimal("10.00"))
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/payments/{receipt.payment_id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.delete(f"/api/payments/{receipt.payment_id}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get("/api/payments/").data, [])

    def test_statistics_rejects_inverted_range(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(
            "/api/payments/statistics/",
            {"date_from": "2025-12-01", "date_to": "2025-11-01"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get("/api/payments/statistics/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_pending"], "50.00")

    def test_payment_methods_list_only_active(self):
        PaymentMethod.objects.filter(name="Tarjeta de crédito").update(is_active=False)
        self.client.force_authenticate(user=self.receptionist)

        response = self.client.get("/api/payment-methods/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [item["name"] for item in response.data]
        self.assertIn("Efectivo", names)
        self.assertNotIn("Tarjeta de crédito", names)
