import datetime
from decimal import Decimal
from unittest import mock

from django.core import mail
from django.core.exceptions import ValidationError
from django.db.models.deletion import ProtectedError
from django.test import TestCase

from erp_core.exceptions import (DuplicateVoucherNumberError,
                                 UnbalancedVoucherError)
from erp_core.models import (AuditLog, Ledger, NotificationLog, Voucher,
                             VoucherEntry, VoucherNotification,
                             VoucherSequence)
from erp_core.services.posting import (delete_voucher, next_voucher_number,
                                       post_voucher, recompute_ledger_balances)

from .utils import make_company, make_ledger, make_member

TODAY = datetime.date(2025, 4, 10)


class PostingTestBase(TestCase):
    def setUp(self):
        self.company = make_company("Test Co")
        self.user = make_member(self.company, "owner")
        self.cash = make_ledger(self.company, "Cash", "cash_in_hand", "1000.00")
        self.bank = make_ledger(self.company, "Bank", "bank_accounts", "5000.00")
        self.sales = make_ledger(self.company, "Sales", "sales_accounts")
        self.debtor = make_ledger(self.company, "Acme", "sundry_debtors")

    def sale(self, amount="500.00", **kwargs):
        return post_voucher(
            self.company, "sales", TODAY,
            [
                {"ledger": self.debtor, "debit": amount},
                {"ledger": self.sales, "credit": amount},
            ],
            user=self.user,
            **kwargs,
        )


""" Success tests """
class PostVoucherTests(PostingTestBase):

    def test_balanced_voucher_moves_ledger_balances(self):
        voucher = self.sale("500.00")

        self.debtor.refresh_from_db()
        self.sales.refresh_from_db()
        # debit side goes up, credit side goes down
        self.assertEqual(self.debtor.current_balance, Decimal("500.00"))
        self.assertEqual(self.sales.current_balance, Decimal("-500.00"))
        self.assertEqual(voucher.total_amount, Decimal("500.00"))
        self.assertEqual(voucher.entries.count(), 2)
        self.assertTrue(voucher.is_balanced())

    def test_opening_balance_is_the_starting_point(self):
        post_voucher(
            self.company, "contra", TODAY,
            [
                {"ledger": self.cash, "debit": "200.00"},
                {"ledger": self.bank, "credit": "200.00"},
            ],
        )
        self.cash.refresh_from_db()
        self.bank.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("1200.00"))
        self.assertEqual(self.bank.current_balance, Decimal("4800.00"))

    def test_numbers_are_sequential_per_type(self):
        first = self.sale()
        second = self.sale()
        journal = post_voucher(
            self.company, "journal", TODAY,
            [
                {"ledger": self.cash, "debit": "1.00"},
                {"ledger": self.sales, "credit": "1.00"},
            ],
        )
        self.assertEqual(first.voucher_number, "SAL-00001")
        self.assertEqual(second.voucher_number, "SAL-00002")
        self.assertEqual(journal.voucher_number, "JV-00001")
        self.assertEqual(
            VoucherSequence.objects.get(company=self.company, voucher_type="sales").last_number, 2
        )

    def test_sequence_skips_hand_numbered_vouchers(self):
        self.sale(voucher_number="SAL-00001")
        self.assertEqual(next_voucher_number(self.company, "sales"), "SAL-00002")

    def test_rounding_within_a_cent_is_accepted(self):
        voucher = post_voucher(
            self.company, "journal", TODAY,
            [
                {"ledger": self.cash, "debit": "100.00"},
                {"ledger": self.sales, "credit": "99.99"},
            ],
        )
        self.assertEqual(voucher.entries.count(), 2)

    def test_posting_is_audited(self):
        voucher = self.sale()
        log = AuditLog.objects.get(object_type="Voucher", object_id=str(voucher.pk))
        self.assertEqual(log.action, "post")
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.changes["total_amount"], "500.00")


""" Rejection tests: nothing may be written """
class PostVoucherRejectionTests(PostingTestBase):

    def assertNothingWritten(self):
        self.assertFalse(Voucher.objects.exists())
        self.assertFalse(VoucherEntry.objects.exists())
        for ledger in Ledger.objects.all():
            self.assertEqual(ledger.current_balance, ledger.opening_balance)

    def test_unbalanced_voucher_is_rejected(self):
        with self.assertRaises(UnbalancedVoucherError) as ctx:
            post_voucher(
                self.company, "sales", TODAY,
                [
                    {"ledger": self.debtor, "debit": "500.00"},
                    {"ledger": self.sales, "credit": "400.00"},
                ],
            )
        self.assertIn("debits=500.00, credits=400.00", str(ctx.exception))
        self.assertNothingWritten()

    def test_entry_needs_exactly_one_side(self):
        for bad in (
            {"ledger": self.cash, "debit": "10.00", "credit": "10.00"},
            {"ledger": self.cash, "debit": "0", "credit": "0"},
            {"ledger": self.cash, "debit": "-10.00"},
        ):
            with self.subTest(entry=bad), self.assertRaises(ValidationError):
                post_voucher(self.company, "journal", TODAY, [bad])
        self.assertNothingWritten()

    def test_no_entries_is_rejected(self):
        with self.assertRaises(ValidationError):
            post_voucher(self.company, "journal", TODAY, [])

    def test_unknown_voucher_type_is_rejected(self):
        with self.assertRaises(ValidationError):
            post_voucher(
                self.company, "barter", TODAY,
                [{"ledger": self.cash, "debit": "1"}, {"ledger": self.sales, "credit": "1"}],
            )

    def test_ledger_of_another_company_is_rejected(self):
        other = make_company("Other Co")
        foreign = make_ledger(other, "Foreign Cash", "cash_in_hand")
        with self.assertRaises(ValidationError):
            post_voucher(
                self.company, "journal", TODAY,
                [{"ledger": foreign, "debit": "10"}, {"ledger": self.sales, "credit": "10"}],
            )
        self.assertNothingWritten()

    def test_inactive_ledger_takes_no_postings(self):
        self.sales.is_active = False
        self.sales.save()
        with self.assertRaises(ValidationError):
            self.sale()
        self.assertNothingWritten()

    def test_entries_must_be_objects(self):
        for entries in ([1, 2], ["cash", "sales"], "cash"):
            with self.subTest(entries=entries), self.assertRaises(ValidationError):
                post_voucher(self.company, "journal", TODAY, entries)
        self.assertNothingWritten()

    def test_amount_too_large_for_the_books(self):
        for amount in ("1e30", "10000000000000000"):
            with self.subTest(amount=amount), self.assertRaises(ValidationError):
                self.sale(amount)
        self.assertNothingWritten()

    def test_contra_only_between_cash_and_bank(self):
        with self.assertRaises(ValidationError):
            post_voucher(
                self.company, "contra", TODAY,
                [{"ledger": self.cash, "debit": "10"}, {"ledger": self.sales, "credit": "10"}],
            )
        self.assertNothingWritten()

    def test_duplicate_manual_number_is_rejected(self):
        self.sale(voucher_number="INV-7")
        with self.assertRaises(DuplicateVoucherNumberError):
            self.sale(voucher_number="INV-7")
        self.assertEqual(Voucher.objects.count(), 1)
        self.debtor.refresh_from_db()
        self.assertEqual(self.debtor.current_balance, Decimal("500.00"))

    def test_same_number_allowed_for_another_type(self):
        self.sale(voucher_number="7")
        voucher = post_voucher(
            self.company, "receipt", TODAY,
            [{"ledger": self.cash, "debit": "10"}, {"ledger": self.debtor, "credit": "10"}],
            voucher_number="7",
        )
        self.assertEqual(voucher.voucher_number, "7")

    def test_failure_after_header_rolls_everything_back(self):
        # balance update blows up after header and entries were inserted
        with mock.patch(
            "erp_core.services.posting._apply_balance_effects",
            side_effect=RuntimeError("boom"),
        ):
            with self.assertRaises(RuntimeError):
                self.sale()
        self.assertNothingWritten()
        self.assertFalse(AuditLog.objects.filter(object_type="Voucher").exists())


""" Deleting and recomputing """
class DeleteVoucherTests(PostingTestBase):

    def test_delete_reverses_balances(self):
        voucher = self.sale("250.00")
        delete_voucher(voucher, user=self.user)

        self.debtor.refresh_from_db()
        self.sales.refresh_from_db()
        self.assertEqual(self.debtor.current_balance, Decimal("0.00"))
        self.assertEqual(self.sales.current_balance, Decimal("0.00"))
        self.assertFalse(VoucherEntry.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action="delete", object_type="Voucher").exists())

    def test_used_ledger_cannot_be_deleted(self):
        self.sale()
        with self.assertRaises((ValidationError, ProtectedError)):
            self.sales.delete()

    def test_recompute_fixes_drift(self):
        self.sale("100.00")
        Ledger.objects.filter(pk=self.debtor.pk).update(current_balance=Decimal("999.00"))

        fixed = recompute_ledger_balances(self.company.pk)

        self.assertEqual(fixed, 1)
        self.debtor.refresh_from_db()
        self.assertEqual(self.debtor.current_balance, Decimal("100.00"))
        # nothing left to fix
        self.assertEqual(recompute_ledger_balances(self.company.pk), 0)

    def test_editing_opening_balance_shifts_current_balance(self):
        self.sale("100.00")
        self.debtor.refresh_from_db()
        self.debtor.opening_balance = Decimal("50.00")
        self.debtor.save()
        self.debtor.refresh_from_db()
        self.assertEqual(self.debtor.current_balance, Decimal("150.00"))


""" Voucher notifications (outbox) """
class VoucherNotificationTests(PostingTestBase):

    def test_notification_is_sent_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            voucher = self.sale(notify_email="buyer@example.com", notify_message="Please confirm")

        self.assertEqual(len(callbacks), 1)
        notification = VoucherNotification.objects.get(voucher=voucher)
        self.assertEqual(notification.status, "pending")
        self.assertTrue(notification.is_delivered)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(voucher.voucher_number, mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])

    def test_nothing_is_queued_when_posting_fails(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(UnbalancedVoucherError):
                post_voucher(
                    self.company, "sales", TODAY,
                    [{"ledger": self.debtor, "debit": "5"}, {"ledger": self.sales, "credit": "4"}],
                    notify_email="buyer@example.com",
                )
        self.assertEqual(callbacks, [])
        self.assertFalse(VoucherNotification.objects.exists())
        self.assertFalse(NotificationLog.objects.exists())

    def test_mail_failure_does_not_undo_the_voucher(self):
        with mock.patch(
            "erp_core.services.notifications.send_mail",
            side_effect=ConnectionRefusedError("smtp down"),
        ):
            with self.captureOnCommitCallbacks(execute=True):
                voucher = self.sale(notify_email="buyer@example.com")

        self.assertTrue(Voucher.objects.filter(pk=voucher.pk).exists())
        log = NotificationLog.objects.get(notification__voucher=voucher)
        self.assertEqual(log.status, "failed")
        self.assertIn("smtp down", log.error_message)
