# accounting/tests/test_journal_workflow.py
"""
Integration tests for journal entry workflow.

These tests use API-level testing to verify the full lifecycle
of journal entries: create -> post -> reverse, plus the reports
that read the resulting books.

Tests verify the API responses rather than direct database queries
to avoid transaction isolation issues between the API client and
test database connections.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TransactionTestCase, override_settings
from rest_framework.test import APIClient

from accounts.authz import actor_for_user
from accounting.commands import create_account
from accounting.models import JournalEntry


@override_settings(PROJECTIONS_SYNC=True, TESTING=True)
class TestJournalEntryThinFlow(TransactionTestCase):
    """
    Thin integration test (API-level):
    - Create JE (DRAFT)
    - Post -> POSTED
    - Reverse -> creates a posted reversal + original becomes REVERSED
    """

    def setUp(self):
        self.client = APIClient()
        User = get_user_model()

        # 1) Create user
        self.user = User.objects.create_superuser(
            username="tester",
            email="tester@dapur.test",
            password="pass12345",
            first_name="Tester",
        )

        # 2) Authenticate
        self.client.force_authenticate(user=self.user)

        # 3) Create accounts through the command layer
        actor = actor_for_user(self.user)
        self.cash = create_account(
            actor, code="1-1001", name="Kas", account_type="ASSET", category="current_asset",
        ).data
        self.sales = create_account(
            actor, code="4-1001", name="Pendapatan Penjualan",
            account_type="REVENUE", category="sales_revenue",
        ).data

    def _create(self, debit="100000.00", credit="100000.00"):
        payload = {
            "date": "2026-01-17",
            "description": "Penjualan nasi kotak",
            "lines": [
                {"account_id": self.cash.id, "description": "Kas", "debit": debit, "credit": "0.00"},
                {"account_code": "4-1001", "description": "Penjualan", "debit": "0.00", "credit": credit},
            ],
        }
        return self.client.post("/api/accounting/journal-entries/", payload, format="json")

    def test_journal_entry_full_lifecycle(self):
        """Test complete JE lifecycle: create -> post -> reverse"""

        # 1) Create JE -> DRAFT
        r = self._create()
        self.assertEqual(r.status_code, 201, r.data if hasattr(r, 'data') else r.content)

        je_id = r.data["id"]
        self.assertEqual(r.data["status"], JournalEntry.Status.DRAFT)
        self.assertEqual(r.data["entry_type"], JournalEntry.EntryType.MANUAL)
        self.assertEqual(r.data["entry_number"], "JE-202601-0001")
        self.assertTrue(r.data["is_balanced"])

        self.assertEqual(len(r.data["lines"]), 2)
        line1 = next(l for l in r.data["lines"] if l["line_no"] == 1)
        line2 = next(l for l in r.data["lines"] if l["line_no"] == 2)
        self.assertEqual(line1["account"], self.cash.id)
        self.assertEqual(Decimal(line1["debit"]), Decimal("100000.00"))
        self.assertEqual(line2["account"], self.sales.id)
        self.assertEqual(Decimal(line2["credit"]), Decimal("100000.00"))

        # 2) Post -> POSTED
        r = self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")
        self.assertEqual(r.status_code, 200, r.data if hasattr(r, 'data') else r.content)
        self.assertEqual(r.data["status"], JournalEntry.Status.POSTED)
        self.assertIsNotNone(r.data["posted_at"])
        self.assertEqual(r.data["posted_by_name"], "Tester")

        r = self.client.get("/api/accounting/accounts/1-1001/")
        self.assertEqual(r.data["balance"], "100000.00")
        self.assertTrue(r.data["has_transactions"])

        # 3) Reverse -> reversal entry + original becomes REVERSED
        r = self.client.post(
            f"/api/accounting/journal-entries/{je_id}/reverse/", {"date": "2026-01-18"}, format="json",
        )
        self.assertEqual(r.status_code, 201, r.data if hasattr(r, 'data') else r.content)

        reversal_data = r.data["reversal"]
        reversal_id = reversal_data["id"]
        self.assertEqual(r.data["original"]["status"], JournalEntry.Status.REVERSED)
        self.assertEqual(reversal_data["status"], JournalEntry.Status.POSTED)
        self.assertEqual(reversal_data["entry_type"], JournalEntry.EntryType.ADJUSTMENT)
        self.assertEqual(reversal_data["reverses_entry"], je_id)
        self.assertEqual(reversal_data["reverses_entry_number"], "JE-202601-0001")
        self.assertEqual(reversal_data["entry_number"], "JE-202601-0002")

        # Fetch original to verify it's now REVERSED
        r = self.client.get(f"/api/accounting/journal-entries/{je_id}/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["status"], JournalEntry.Status.REVERSED)
        self.assertEqual(r.data["reversed_by_name"], "Tester")
        self.assertIsNotNone(r.data["reversed_at"])

        # Fetch reversal to verify lines are swapped
        r = self.client.get(f"/api/accounting/journal-entries/{reversal_id}/")
        self.assertEqual(r.status_code, 200)
        rev_lines = sorted(r.data["lines"], key=lambda l: l["line_no"])
        self.assertEqual(len(rev_lines), 2)

        self.assertEqual(rev_lines[0]["account"], self.cash.id)
        self.assertEqual(Decimal(rev_lines[0]["debit"]), Decimal("0.00"))
        self.assertEqual(Decimal(rev_lines[0]["credit"]), Decimal("100000.00"))

        self.assertEqual(rev_lines[1]["account"], self.sales.id)
        self.assertEqual(Decimal(rev_lines[1]["debit"]), Decimal("100000.00"))
        self.assertEqual(Decimal(rev_lines[1]["credit"]), Decimal("0.00"))

        r = self.client.get("/api/accounting/accounts/1-1001/")
        self.assertEqual(r.data["balance"], "0.00")

        # Reversing again is a conflict
        r = self.client.post(f"/api/accounting/journal-entries/{je_id}/reverse/", {}, format="json")
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "ENTRY_ALREADY_REVERSED")

    def test_unbalanced_entry_is_rejected(self):
        """Unbalanced entries fail with both totals and the difference"""
        r = self._create(debit="500000.00", credit="300000.00")

        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["code"], "UNBALANCED_ENTRY")
        self.assertEqual(r.data["kind"], "VALIDATION")
        self.assertEqual(r.data["total_debit"], "500000.00")
        self.assertEqual(r.data["total_credit"], "300000.00")
        self.assertEqual(r.data["difference"], "200000.00")

        r = self.client.get("/api/accounting/journal-entries/")
        self.assertEqual(r.data, [])

    def test_malformed_payload_is_rejected(self):
        payload = {"date": "2026-01-17", "description": "Tanpa akun", "lines": [{"debit": "1.00"}]}

        r = self.client.post("/api/accounting/journal-entries/", payload, format="json")

        self.assertEqual(r.status_code, 400)
        self.assertIn("lines", r.data)

    def test_post_twice_is_a_conflict(self):
        je_id = self._create().data["id"]
        self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")

        r = self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")

        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "ENTRY_ALREADY_POSTED")

    def test_posted_entry_cannot_be_deleted(self):
        """Posted entries are immutable; only drafts can be deleted"""
        je_id = self._create().data["id"]
        self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")

        r = self.client.delete(f"/api/accounting/journal-entries/{je_id}/")
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "POSTED_ENTRY_IMMUTABLE")
        self.assertEqual(r.data["kind"], "PROTECTED")

        draft_id = self._create().data["id"]
        r = self.client.delete(f"/api/accounting/journal-entries/{draft_id}/")
        self.assertEqual(r.status_code, 204)

        r = self.client.get(f"/api/accounting/journal-entries/{draft_id}/")
        self.assertEqual(r.status_code, 404)

    def test_entry_list_filters(self):
        posted_id = self._create().data["id"]
        self.client.post(f"/api/accounting/journal-entries/{posted_id}/post/", {}, format="json")
        self._create()

        r = self.client.get("/api/accounting/journal-entries/", {"status": "POSTED"})
        self.assertEqual([e["id"] for e in r.data], [posted_id])

        r = self.client.get("/api/accounting/journal-entries/", {"date_from": "2026-02-01"})
        self.assertEqual(r.data, [])

        r = self.client.get("/api/accounting/journal-entries/", {"date_from": "kemarin"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["code"], "INVALID_INPUT")


@override_settings(PROJECTIONS_SYNC=True, TESTING=True)
class TestChartOfAccountsApi(TransactionTestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = get_user_model().objects.create_superuser(
            username="admin", email="admin@dapur.test", password="pass12345",
        )
        self.client.force_authenticate(user=self.user)

    def _create(self, **overrides):
        payload = {
            "code": "1-1001",
            "name": "Kas",
            "account_type": "ASSET",
            "category": "current_asset",
        }
        payload.update(overrides)
        return self.client.post("/api/accounting/accounts/", payload, format="json")

    def test_create_and_list(self):
        r = self._create()
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(r.data["normal_balance"], "DEBIT")
        self.assertEqual(r.data["balance"], "0.00")

        self._create(code="4-1001", name="Pendapatan Penjualan",
                     account_type="REVENUE", category="sales_revenue")

        r = self.client.get("/api/accounting/accounts/")
        self.assertEqual([a["code"] for a in r.data], ["1-1001", "4-1001"])

        r = self.client.get("/api/accounting/accounts/", {"type": "REVENUE"})
        self.assertEqual([a["code"] for a in r.data], ["4-1001"])

        r = self.client.get("/api/accounting/accounts/", {"search": "kas"})
        self.assertEqual([a["code"] for a in r.data], ["1-1001"])

    def test_category_must_fit_type(self):
        r = self._create(category="payable")

        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["code"], "INVALID_CATEGORY_FOR_TYPE")

    def test_duplicate_code(self):
        self._create()

        r = self._create(name="Kas Kecil")

        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "DUPLICATE_CODE")

    def test_update_and_delete(self):
        self._create()

        r = self.client.patch("/api/accounting/accounts/1-1001/", {"name": "Kas Besar"}, format="json")
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["name"], "Kas Besar")

        r = self.client.delete("/api/accounting/accounts/1-1001/")
        self.assertEqual(r.status_code, 204)

        r = self.client.get("/api/accounting/accounts/1-1001/")
        self.assertEqual(r.status_code, 404)

    def test_ledger_endpoint(self):
        self._create()
        self._create(code="4-1001", name="Pendapatan Penjualan",
                     account_type="REVENUE", category="sales_revenue")
        for day in ("2026-01-05", "2026-01-20"):
            r = self.client.post("/api/accounting/journal-entries/", {
                "date": day,
                "description": "Penjualan",
                "lines": [
                    {"account_code": "1-1001", "debit": "1000.00"},
                    {"account_code": "4-1001", "credit": "1000.00"},
                ],
            }, format="json")
            self.client.post(f"/api/accounting/journal-entries/{r.data['id']}/post/", {}, format="json")

        r = self.client.get("/api/accounting/accounts/1-1001/ledger/", {"start": "2026-01-10", "end": "2026-01-31"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["opening_balance"], "1000.00")
        self.assertEqual(len(r.data["rows"]), 1)
        self.assertEqual(r.data["rows"][0]["running_balance"], "2000.00")

        r = self.client.get("/api/accounting/accounts/1-1001/ledger/", {"start": "2026-02-01", "end": "2026-01-01"})
        self.assertEqual(r.status_code, 400)

    def test_reports(self):
        self._create()
        self._create(code="4-1001", name="Pendapatan Penjualan",
                     account_type="REVENUE", category="sales_revenue")
        r = self.client.post("/api/accounting/journal-entries/", {
            "date": "2026-01-05",
            "description": "Penjualan",
            "lines": [
                {"account_code": "1-1001", "debit": "500000.00"},
                {"account_code": "4-1001", "credit": "500000.00"},
            ],
        }, format="json")
        self.client.post(f"/api/accounting/journal-entries/{r.data['id']}/post/", {}, format="json")

        r = self.client.get("/api/reports/trial-balance/", {"as_of": "2026-01-31"})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data["is_balanced"])
        self.assertEqual(r.data["total_debit"], "500000.00")
        self.assertEqual(r.data["lag"], 0)

        r = self.client.get("/api/reports/trial-balance/export/", {"as_of": "2026-01-31", "format": "csv"})
        self.assertEqual(r.status_code, 200)
        lines = r.content.decode("utf-8-sig").splitlines()
        self.assertEqual(lines[0], "Kode Akun,Nama Akun,Tipe,Debit,Kredit")
        self.assertEqual(lines[-1], "TOTAL,,,500000,500000")

        r = self.client.get("/api/reports/trial-balance/export/", {"format": "pdf"})
        self.assertEqual(r.status_code, 400)

        r = self.client.get("/api/reports/income-statement/", {"start": "2026-01-01", "end": "2026-01-31"})
        self.assertEqual(r.data["net_income"], "500000.00")

        r = self.client.get("/api/reports/balance-sheet/", {"as_of": "2026-01-31"})
        self.assertTrue(r.data["is_balanced"])

        r = self.client.get("/api/reports/account-balances/", {"has_activity": "true"})
        self.assertEqual(r.data["count"], 2)

        r = self.client.get("/api/reports/projection-status/")
        self.assertTrue(r.data["all_healthy"])


@override_settings(PROJECTIONS_SYNC=True, TESTING=True)
class TestApiPermissions(TransactionTestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = get_user_model().objects.create_user(username="tamu", password="pass12345")
        self.client.force_authenticate(user=self.user)

    def test_user_without_permissions_is_forbidden(self):
        r = self.client.get("/api/accounting/accounts/")
        self.assertEqual(r.status_code, 403)

        r = self.client.post("/api/accounting/accounts/", {
            "code": "1-1001", "name": "Kas", "account_type": "ASSET", "category": "current_asset",
        }, format="json")
        self.assertEqual(r.status_code, 403)

        r = self.client.get("/api/reports/trial-balance/")
        self.assertEqual(r.status_code, 403)

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)

        r = self.client.get("/api/accounting/accounts/")

        self.assertEqual(r.status_code, 401)


@override_settings(PROJECTIONS_SYNC=True, TESTING=True)
class TestTokenAuth(TransactionTestCase):
    """
    JWT login, refresh and logout. Logging out blacklists the refresh
    token so it cannot mint new access tokens.
    """

    def setUp(self):
        self.client = APIClient()
        get_user_model().objects.create_superuser(
            username="bendahara", email="bendahara@dapur.test", password="pass12345",
        )

    def test_login_refresh_and_logout(self):
        r = self.client.post("/api/auth/token/", {
            "username": "bendahara", "password": "pass12345",
        }, format="json")
        self.assertEqual(r.status_code, 200, r.data)
        refresh = r.data["refresh"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['access']}")
        r = self.client.get("/api/accounting/accounts/")
        self.assertEqual(r.status_code, 200)

        r = self.client.post("/api/auth/token/refresh/", {"refresh": refresh}, format="json")
        self.assertEqual(r.status_code, 200, r.data)
        # Rotation blacklists the old refresh token and hands out a new one
        refresh = r.data["refresh"]

        r = self.client.post("/api/auth/token/blacklist/", {"refresh": refresh}, format="json")
        self.assertEqual(r.status_code, 200, r.data)

        r = self.client.post("/api/auth/token/refresh/", {"refresh": refresh}, format="json")
        self.assertEqual(r.status_code, 401)
