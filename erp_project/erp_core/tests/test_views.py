import json
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from erp_core.models import SawmillLog, Voucher, VoucherNotification

from .utils import make_company, make_ledger, make_member

User = get_user_model()


class ApiTestBase(TestCase):
    def setUp(self):
        self.company = make_company("Api Co")
        self.user = make_member(self.company, "owner")
        self.cash = make_ledger(self.company, "Cash", "cash_in_hand", "1000.00")
        self.sales = make_ledger(self.company, "Sales", "sales_accounts")
        self.client.force_login(self.user)

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type="application/json")

    def voucher_payload(self, debit="100.00", credit="100.00", **extra):
        payload = {
            "voucher_type": "sales",
            "voucher_date": "2025-04-10",
            "entries": [
                {"ledger": self.cash.pk, "debit": debit},
                {"ledger": self.sales.pk, "credit": credit},
            ],
        }
        payload.update(extra)
        return payload


""" Vouchers & reports """
class VoucherApiTests(ApiTestBase):

    def test_post_voucher(self):
        response = self.post_json(reverse("erp_core:post-voucher"), self.voucher_payload())

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["voucher_number"], "SAL-00001")
        self.assertEqual(body["total_amount"], "100.00")
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("1100.00"))

    def test_unbalanced_voucher_is_400(self):
        response = self.post_json(
            reverse("erp_core:post-voucher"), self.voucher_payload(credit="90.00")
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])
        self.assertFalse(Voucher.objects.exists())

    def test_duplicate_number_is_409(self):
        url = reverse("erp_core:post-voucher")
        self.post_json(url, self.voucher_payload(voucher_number="INV-1"))
        response = self.post_json(url, self.voucher_payload(voucher_number="INV-1"))
        self.assertEqual(response.status_code, 409)

    def test_out_of_range_amount_is_400(self):
        response = self.post_json(
            reverse("erp_core:post-voucher"), self.voucher_payload(debit="1e30", credit="1e30")
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Voucher.objects.exists())

    def test_entries_that_are_not_objects_are_400(self):
        payload = self.voucher_payload()
        payload["entries"] = [1, 2]
        response = self.post_json(reverse("erp_core:post-voucher"), payload)
        self.assertEqual(response.status_code, 400)

    def test_bad_json_is_400(self):
        response = self.client.post(
            reverse("erp_core:post-voucher"), data="{oops", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    def test_notification_is_queued(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.post_json(
                reverse("erp_core:post-voucher"),
                self.voucher_payload(notify_email="buyer@example.com"),
            )
        self.assertEqual(len(callbacks), 1)
        self.assertTrue(VoucherNotification.objects.filter(to_user_email="buyer@example.com").exists())

    def test_delete_voucher(self):
        self.post_json(reverse("erp_core:post-voucher"), self.voucher_payload())
        voucher = Voucher.objects.get()
        response = self.client.post(reverse("erp_core:delete-voucher", args=[voucher.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Voucher.objects.exists())

    def test_reports(self):
        self.post_json(reverse("erp_core:post-voucher"), self.voucher_payload())

        tb = self.client.get(reverse("erp_core:report", args=["trial_balance"])).json()
        self.assertEqual(tb["total_debit"], tb["total_credit"])

        statement = self.client.get(
            reverse("erp_core:ledger-statement", args=[self.cash.pk]),
            {"from_date": "2025-04-01"},
        ).json()
        self.assertEqual(statement["closing_balance"], "1100.00")

        response = self.client.get(reverse("erp_core:report", args=["cash_flow"]))
        self.assertEqual(response.status_code, 400)

    def test_wrong_method(self):
        response = self.client.get(reverse("erp_core:post-voucher"))
        self.assertEqual(response.status_code, 405)


""" Authentication & roles """
class AccessTests(ApiTestBase):

    def test_anonymous_gets_401(self):
        self.client.logout()
        for url in (
            reverse("erp_core:report", args=["day_book"]),
            reverse("erp_core:notifications"),
        ):
            with self.subTest(url=url):
                self.assertEqual(self.client.get(url).status_code, 401)

    def test_user_without_company_gets_403(self):
        loner = User.objects.create_user(username="loner", password="pw")
        self.client.force_login(loner)
        response = self.client.get(reverse("erp_core:report", args=["day_book"]))
        self.assertEqual(response.status_code, 403)

    def test_only_owner_provisions_users(self):
        payload = {
            "email": "worker@example.com",
            "password": "pw-123456",
            "full_name": "Floor Worker",
            "role": "production",
        }
        response = self.post_json(reverse("erp_core:provision-user"), payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["role"], "production")

        worker = response.json()["user"]["id"]
        self.client.force_login(User.objects.get(pk=worker))
        payload["email"] = "another@example.com"
        response = self.post_json(reverse("erp_core:provision-user"), payload)
        self.assertEqual(response.status_code, 403)


""" Sawmill """
class SawmillApiTests(ApiTestBase):

    def register(self, tag="T-1"):
        return self.post_json(
            reverse("erp_core:register-log"),
            {"tag_number": tag, "girth_cm": "30", "length_meter": "4", "grade": "B"},
        )

    def test_register_and_look_up(self):
        response = self.register()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["log"]["cft"], "0.795")

        found = self.client.get(reverse("erp_core:lookup-log"), {"q": "T-1"})
        self.assertEqual(found.json()["log"]["tag_number"], "T-1")

    def test_duplicate_tag_is_409(self):
        self.register()
        self.assertEqual(self.register().status_code, 409)

    def test_oversized_girth_is_400(self):
        response = self.post_json(
            reverse("erp_core:register-log"),
            {"tag_number": "T-2", "girth_cm": "1e20", "length_meter": "4"},
        )
        self.assertEqual(response.status_code, 400)

    def test_qr_png(self):
        self.register()
        log = SawmillLog.objects.get()
        response = self.client.get(reverse("erp_core:log-qr", args=[log.pk]))
        self.assertEqual(response["Content-Type"], "image/png")
        self.assertTrue(response.content.startswith(b"\x89PNG"))

    def test_status_transition(self):
        self.register()
        log = SawmillLog.objects.get()
        url = reverse("erp_core:log-status", args=[log.pk])
        self.assertEqual(self.post_json(url, {"status": "processed"}).status_code, 400)
        response = self.post_json(url, {"status": "in_process"})
        self.assertEqual(response.json(), {"ok": True, "status": "in_process"})


""" Production """
class OrderApiTests(ApiTestBase):

    def test_order_production_and_dispatch(self):
        response = self.post_json(
            reverse("erp_core:create-order"),
            {
                "order_no": "SO-1",
                "customer_name": "Acme",
                "product": "Beams",
                "ordered_quantity": "10",
                "assignee_ids": [self.user.pk],
            },
        )
        self.assertEqual(response.status_code, 201)
        order_id = response.json()["id"]

        response = self.post_json(
            reverse("erp_core:order-production", args=[order_id]), {"produced_quantity": "10"}
        )
        self.assertEqual(response.json()["order_status"], "in_production")

        response = self.post_json(
            reverse("erp_core:order-dispatch", args=[order_id]), {"dispatched_quantity": "11"}
        )
        self.assertEqual(response.status_code, 400)
        response = self.post_json(
            reverse("erp_core:order-dispatch", args=[order_id]), {"dispatched_quantity": "10"}
        )
        self.assertEqual(response.json()["order_status"], "completed")

        summary = self.client.get(reverse("erp_core:order-summary", args=[order_id])).json()
        self.assertEqual(Decimal(summary["balance_quantity"]), 0)


""" GSTIN """
@override_settings(GSTIN_API_KEY="", GSTIN_CLIENT_ID="")
class GstinApiTests(ApiTestBase):

    def test_lookup(self):
        response = self.client.get(reverse("erp_core:gstin-lookup", args=["29ABCDE1234F1Z5"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["source"], "dummy")

    def test_invalid_gstin_is_400(self):
        response = self.client.get(reverse("erp_core:gstin-lookup", args=["12345"]))
        self.assertEqual(response.status_code, 400)
