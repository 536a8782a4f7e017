import json
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from erp_core.exceptions import DuplicateTagError, InvalidStatusTransition
from erp_core.models import (AuditLog, ProductRate, SawMill,
                             SawmillContractor, SawmillLog,
                             SawmillOutputEntry, SawmillProductionEntry)
from erp_core.services.sawmill import (advance_log_status, log_stats,
                                       lookup_log, qr_code_png,
                                       record_contractor_payment,
                                       record_log_input, record_output,
                                       register_log, yield_report)

from .utils import make_company, make_ledger, make_member


class SawmillTestBase(TestCase):
    def setUp(self):
        self.company = make_company("Timber Co")
        self.user = make_member(self.company, "yard")
        self.mill = SawMill.objects.create(company=self.company, name="Main Yard")
        self.contractor = SawmillContractor.objects.create(
            company=self.company, saw_mill=self.mill, name="Ravi"
        )


""" Log registry """
class RegisterLogTests(SawmillTestBase):

    def test_cft_and_inches_are_derived(self):
        log = register_log(self.company, self.user, "T-1", "30", "4", "B")

        self.assertEqual(log.cft, Decimal("0.795"))
        log.refresh_from_db()
        # girth_cm / 2.54 to within 1e-9
        self.assertLess(abs(log.girth_inch - Decimal("30") / Decimal("2.54")), Decimal("1e-9"))
        self.assertEqual(log.status, "available")
        self.assertEqual(
            log.qr_data,
            {"tag": "T-1", "girth": 30.0, "length": 4.0, "grade": "B", "cft": 0.795},
        )

    def test_purchase_value_follows_cft(self):
        log = register_log(self.company, self.user, "T-1", "30", "4", purchase_rate="1000")
        self.assertEqual(log.total_amount, Decimal("795.00"))

    def test_duplicate_tag_in_same_company(self):
        register_log(self.company, self.user, "T-1", "30", "4")
        with self.assertRaises(DuplicateTagError):
            register_log(self.company, self.user, " T-1 ", "40", "3")
        self.assertEqual(SawmillLog.objects.count(), 1)

    def test_same_tag_in_another_company(self):
        register_log(self.company, self.user, "T-1", "30", "4")
        other = make_company("Other Timber")
        register_log(other, None, "T-1", "30", "4")
        self.assertEqual(SawmillLog.objects.filter(tag_number="T-1").count(), 2)

    def test_bad_dimensions_are_rejected(self):
        for girth, length in (("0", "4"), ("30", "-1"), ("", "4"), ("abc", "4")):
            with self.subTest(girth=girth, length=length), self.assertRaises(ValidationError):
                register_log(self.company, self.user, "T-9", girth, length)
        self.assertFalse(SawmillLog.objects.exists())

    def test_oversized_dimensions_are_rejected(self):
        for girth, length in (("1e20", "4"), ("30", "1e9"), ("99999999", "99999999")):
            with self.subTest(girth=girth, length=length), self.assertRaises(ValidationError):
                register_log(self.company, self.user, "T-9", girth, length)
        self.assertFalse(SawmillLog.objects.exists())

    def test_qr_snapshot_is_not_rebuilt(self):
        log = register_log(self.company, self.user, "T-1", "30", "4")
        log.grade = "C"
        log.save()
        log.refresh_from_db()
        self.assertEqual(log.qr_data["grade"], "A")

    def test_lookup_by_tag_or_qr_payload(self):
        log = register_log(self.company, self.user, "T-1", "30", "4")

        self.assertEqual(lookup_log(self.company, "T-1"), log)
        self.assertEqual(lookup_log(self.company, json.dumps(log.qr_data)), log)
        with self.assertRaises(SawmillLog.DoesNotExist):
            lookup_log(make_company("Elsewhere"), "T-1")
        with self.assertRaises(ValidationError):
            lookup_log(self.company, "{not json")

    def test_qr_code_is_a_png(self):
        log = register_log(self.company, self.user, "T-1", "30", "4")
        self.assertTrue(qr_code_png(log).startswith(b"\x89PNG"))


""" Status lifecycle """
class LogStatusTests(SawmillTestBase):

    def setUp(self):
        super().setUp()
        self.log = register_log(self.company, self.user, "T-1", "30", "4")

    def test_moves_forward_one_step_at_a_time(self):
        advance_log_status(self.log, "in_process", user=self.user)
        advance_log_status(self.log, "processed", user=self.user)
        self.log.refresh_from_db()
        self.assertEqual(self.log.status, "processed")
        self.assertEqual(
            AuditLog.objects.filter(object_type="SawmillLog", action="status").count(), 2
        )

    def test_cannot_skip_or_go_back(self):
        with self.assertRaises(InvalidStatusTransition):
            advance_log_status(self.log, "processed")
        advance_log_status(self.log, "in_process")
        with self.assertRaises(InvalidStatusTransition):
            advance_log_status(self.log, "available")
        with self.assertRaises(InvalidStatusTransition):
            advance_log_status(self.log, "in_process")
        self.log.refresh_from_db()
        self.assertEqual(self.log.status, "in_process")

    def test_log_with_production_cannot_be_deleted(self):
        record_log_input(self.company, girth="121.92", length="10", log=self.log)
        with self.assertRaises(ValidationError):
            self.log.delete()


""" Production, output and contractor balance """
class SawmillProductionTests(SawmillTestBase):

    def setUp(self):
        super().setUp()
        self.log = register_log(self.company, self.user, "T-1", "120", "4")

    def test_input_uses_hoppus_cft_and_credits_contractor(self):
        entry = record_log_input(
            self.company, girth="121.92", length="10", quantity=1,
            rate_per_cft="12", contractor=self.contractor, log=self.log, user=self.user,
        )

        self.assertEqual(entry.cft, Decimal("10.000"))
        self.assertEqual(entry.total_amount, Decimal("120.00"))
        self.contractor.refresh_from_db()
        self.assertEqual(self.contractor.current_balance, Decimal("120.00"))
        self.log.refresh_from_db()
        self.assertEqual(self.log.status, "in_process")

    def test_processed_log_cannot_be_fed_again(self):
        advance_log_status(self.log, "in_process")
        advance_log_status(self.log, "processed")
        with self.assertRaises(ValidationError):
            record_log_input(self.company, girth="100", length="10", log=self.log)

    def test_output_priced_from_product_rate_and_finishes_log(self):
        ProductRate.objects.create(
            company=self.company, product_type="main_material", rate_per_unit=Decimal("1400")
        )
        entry = record_log_input(self.company, girth="121.92", length="10", log=self.log)

        planks = record_output(
            self.company, output_type="main_material", production_entry=entry,
            size="4x2", length="12", quantity="6",
        )

        self.assertEqual(planks.cft, Decimal("4.000"))
        self.assertEqual(planks.rate_per_unit, Decimal("1400.00"))
        self.assertEqual(planks.amount, Decimal("5600.00"))
        self.log.refresh_from_db()
        self.assertEqual(self.log.status, "processed")

    def test_weighed_output_has_no_cft(self):
        firewood = record_output(
            self.company, output_type="firewood", weight="50", rate_per_unit="4"
        )
        self.assertEqual(firewood.cft, Decimal("0"))
        self.assertEqual(firewood.amount, Decimal("200.00"))
        with self.assertRaises(ValidationError):
            record_output(self.company, output_type="sawdust")

    def test_out_of_range_volumes_are_rejected(self):
        with self.assertRaises(ValidationError):
            record_log_input(self.company, girth="1e20", length="10", log=self.log)
        with self.assertRaises(ValidationError):
            record_log_input(
                self.company, girth="99999999", length="99999999", quantity=10 ** 20
            )
        with self.assertRaises(ValidationError):
            record_output(
                self.company, output_type="main_material",
                size="1000x1000", length="1e15", quantity="1e15",
            )
        with self.assertRaises(ValidationError):
            record_output(self.company, output_type="off_side", cft="1e40")
        self.assertFalse(SawmillProductionEntry.objects.exists())
        self.assertFalse(SawmillOutputEntry.objects.exists())

    def test_payment_reduces_balance_and_posts_voucher(self):
        cash = make_ledger(self.company, "Cash", "cash_in_hand", "1000.00")
        self.contractor.ledger = make_ledger(self.company, "Ravi A/c", "sundry_creditors")
        self.contractor.save()
        record_log_input(
            self.company, girth="121.92", length="10", rate_per_cft="12",
            contractor=self.contractor,
        )

        payment = record_contractor_payment(
            self.contractor, self.user, "50.00", paid_from=cash, payment_mode="cash"
        )

        self.contractor.refresh_from_db()
        self.assertEqual(self.contractor.current_balance, Decimal("70.00"))
        voucher = payment.voucher
        self.assertEqual(voucher.voucher_type, "payment")
        self.assertTrue(voucher.is_balanced())
        cash.refresh_from_db()
        self.assertEqual(cash.current_balance, Decimal("950.00"))

    def test_payment_without_ledger_posts_nothing(self):
        payment = record_contractor_payment(self.contractor, self.user, "25")
        self.assertIsNone(payment.voucher)
        self.contractor.refresh_from_db()
        self.assertEqual(self.contractor.current_balance, Decimal("-25.00"))

    def test_payment_must_be_positive(self):
        with self.assertRaises(ValidationError):
            record_contractor_payment(self.contractor, self.user, "0")

    def test_deleting_an_entry_rebuilds_the_balance(self):
        entry = record_log_input(
            self.company, girth="121.92", length="10", rate_per_cft="12",
            contractor=self.contractor,
        )
        entry.delete()
        self.contractor.refresh_from_db()
        self.assertEqual(self.contractor.current_balance, Decimal("0.00"))


class SawmillStatsTests(SawmillTestBase):

    def test_counts_and_cft_per_status(self):
        register_log(self.company, self.user, "T-1", "30", "4")
        second = register_log(self.company, self.user, "T-2", "30", "4")
        advance_log_status(second, "in_process")

        stats = log_stats(self.company)

        self.assertEqual(stats["available"], {"count": 1, "cft": Decimal("0.795")})
        self.assertEqual(stats["in_process"]["count"], 1)
        self.assertEqual(stats["processed"]["count"], 0)
        self.assertEqual(stats["total"]["count"], 2)
        self.assertEqual(stats["total"]["cft"], Decimal("1.590"))

    def test_yield_compares_output_with_input(self):
        record_log_input(self.company, girth="121.92", length="10")
        record_output(
            self.company, output_type="main_material", size="4x2", length="12",
            quantity="6", rate_per_unit="0",
        )
        record_output(self.company, output_type="sawdust", weight="20", rate_per_unit="1")

        report = yield_report(self.company)

        self.assertEqual(report["input_cft"], Decimal("10.000"))
        self.assertEqual(report["output_cft"], Decimal("4.000"))
        self.assertEqual(report["yield_percent"], Decimal("40.00"))
        self.assertEqual(report["output"]["sawdust"]["weight"], Decimal("20.00"))
