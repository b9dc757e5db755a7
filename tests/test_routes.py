# Ledger Tests - HTTP routes against the fake backend
#
# Tests for:
# - Login/logout and session expiry handling
# - Quick-add with credit blocking and warnings
# - Debt collection, reminders and reports
# - Admin-only settings and user management

import json

import pytest

from ledger.constants import ACCESS_TOKEN_KEY

from tests.conftest import STAFF_PASSCODE, assert_response


class TestSystem:

    @pytest.mark.smoke
    def test_health_reports_backend(self, client):
        response = client.get("/health")

        assert_response(response, 200, "Health with reachable backend", "ledger/routes/system.py:health")
        assert response.get_json()["checks"]["backend"]["status"] == "healthy"

    def test_cors_for_dev_frontend(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})

        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


class TestAuthRoutes:

    @pytest.mark.smoke
    @pytest.mark.auth
    def test_login_stores_tokens_in_session(self, client):
        response = client.post("/login", json={"username": "admin", "passcode": "123456"})

        assert_response(response, 200, "Valid admin login", "ledger/routes/auth.py:login_route")
        assert response.get_json()["user"]["role"] == "ADMIN"
        with client.session_transaction() as session:
            assert session[ACCESS_TOKEN_KEY] == "access-u1"

    @pytest.mark.auth
    def test_malformed_passcode_rejected_locally(self, client, fake_backend):
        response = client.post("/login", json={"username": "admin", "passcode": "12"})

        assert_response(response, 400, "Short passcode", "ledger/services/session_service.py:login")
        assert "passcode" in response.get_json()["errors"]
        assert fake_backend.calls("POST", "/auth/login") == []

    @pytest.mark.auth
    def test_wrong_passcode_is_a_toast(self, client):
        response = client.post("/login", json={"username": "admin", "passcode": "000000"})

        assert_response(response, 401, "Wrong passcode", "ledger/decorators.py:api_error_response")
        body = response.get_json()
        assert body["toast"] is True
        assert "redirect" not in body

    @pytest.mark.auth
    def test_protected_route_requires_login(self, client):
        response = client.get("/sales/today")

        assert_response(response, 401, "Anonymous access", "ledger/decorators.py:require_login")
        assert response.get_json()["redirect"] == "/login"

    @pytest.mark.auth
    def test_expired_session_redirects_to_login(self, logged_in, fake_backend):
        fake_backend.expire("access-u1")
        fake_backend.refresh_pairs.clear()

        response = logged_in.get("/sales/today")

        assert_response(response, 401, "Refresh failure", "ledger/api/client.py:_recover_from_401")
        assert response.get_json()["redirect"] == "/login"
        with logged_in.session_transaction() as session:
            assert ACCESS_TOKEN_KEY not in session

    @pytest.mark.auth
    def test_expired_token_refreshed_transparently(self, logged_in, fake_backend):
        fake_backend.expire("access-u1")

        response = logged_in.get("/sales/today")

        assert_response(response, 200, "Refresh then replay", "ledger/api/client.py:_recover_from_401")
        with logged_in.session_transaction() as session:
            assert session[ACCESS_TOKEN_KEY] == "access-2"

    @pytest.mark.auth
    def test_logout_clears_session(self, logged_in):
        logged_in.post("/logout")

        assert logged_in.get("/me").status_code == 401


class TestSalesRoutes:

    @pytest.fixture
    def customer(self, fake_backend):
        return fake_backend.add_customer("Maria", "BANAI", credit_limit=1000)

    @pytest.mark.smoke
    @pytest.mark.sales
    def test_today_lists_entries(self, logged_in, fake_backend, customer):
        fake_backend.add_sale(customer["id"], quantity=2)

        response = logged_in.get("/sales/today")

        assert_response(response, 200, "Today's sales", "ledger/routes/sales.py:today_route")
        body = response.get_json()
        assert len(body["entries"]) == 1
        assert body["entries"][0]["customer_name"] == "Maria"
        assert body["summary"]["metrics"]["quantity"] == 2

    @pytest.mark.sales
    @pytest.mark.credit
    def test_over_limit_credit_sale_blocked(self, logged_in, fake_backend, customer):
        fake_backend.outstanding[customer["id"]] = 900

        response = logged_in.post("/sales/quick-add", json={
            "customer_id": customer["id"], "quantity": 6, "payment_type": "CREDIT",
        })

        assert_response(response, 400, "Credit sale over limit", "ledger/services/sales_service.py:quick_add_sale")
        assert "Credit limit exceeded" in response.get_json()["errors"]["credit"]
        assert fake_backend.calls("POST", "/sales") == []

    @pytest.mark.sales
    @pytest.mark.credit
    def test_near_limit_credit_sale_warns(self, logged_in, fake_backend, customer):
        fake_backend.outstanding[customer["id"]] = 700

        response = logged_in.post("/sales/quick-add", json={
            "customer_id": customer["id"], "quantity": 6, "payment_type": "CREDIT",
        })

        assert_response(response, 201, "Credit sale near limit", "ledger/routes/sales.py:quick_add_route")
        body = response.get_json()
        assert body["credit"]["status"] == "warning"
        assert "Approaching credit limit" in body["warning"]
        assert fake_backend.outstanding[customer["id"]] == 850

    @pytest.mark.sales
    @pytest.mark.credit
    def test_credit_check_rereads_balance_before_submit(self, logged_in, fake_backend, customer):
        payload = {"customer_id": customer["id"], "quantity": 6, "payment_type": "CREDIT"}
        preview = logged_in.post("/sales/credit-check", json=payload).get_json()
        assert preview["credit"]["status"] == "ok"

        # another terminal pushed the balance up in the meantime
        fake_backend.outstanding[customer["id"]] = 900
        response = logged_in.post("/sales/quick-add", json=payload)

        assert_response(response, 400, "Stale preview, fresh submit", "ledger/services/sales_service.py:quick_add_sale")

    @pytest.mark.sales
    def test_custom_price_used_for_sale(self, logged_in, fake_backend):
        customer = fake_backend.add_customer("Ben", "URBAN", custom_unit_price=30)

        response = logged_in.post("/sales/quick-add", json={"customer_id": customer["id"], "quantity": 2})

        assert response.get_json()["sale"]["unit_price"] == 30
        assert json.loads(fake_backend.calls("POST", "/sales")[0].content)["unitPrice"] == 30

    @pytest.mark.sales
    def test_sale_accepted_without_record_still_succeeds(self, logged_in, fake_backend, customer):
        logged_in.get("/sales/today")
        fake_backend.overrides[("POST", "/sales")] = (201, {"success": True, "data": None})

        response = logged_in.post("/sales/quick-add", json={"customer_id": customer["id"], "quantity": 2})

        assert_response(response, 201, "Sale created, empty body", "ledger/services/sales_service.py:quick_add_sale")
        sale = response.get_json()["sale"]
        assert sale["id"] == ""
        assert sale["quantity"] == 2
        assert sale["total"] == 50
        assert len(fake_backend.calls("POST", "/sales")) == 1

        # cached sales list was dropped, so the next read goes to the backend
        before = len(fake_backend.calls("GET", "/sales"))
        logged_in.get("/sales/today")
        assert len(fake_backend.calls("GET", "/sales")) == before + 1

    @pytest.mark.sales
    def test_old_sale_cannot_be_deleted(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"], created_at="2020-01-01T00:00:00Z", date="2020-01-01")

        response = logged_in.delete(f"/sales/{sale['id']}")

        assert_response(response, 409, "Delete outside edit window", "ledger/services/sales_service.py:delete_sale")
        assert sale["id"] in fake_backend.sales

    @pytest.mark.sales
    def test_recent_sale_deleted(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"])

        response = logged_in.delete(f"/sales/{sale['id']}")

        assert_response(response, 200, "Delete inside edit window", "ledger/routes/sales.py:delete_route")
        assert sale["id"] not in fake_backend.sales


class TestDashboard:

    @pytest.mark.smoke
    def test_dashboard_sections(self, logged_in, fake_backend):
        customer = fake_backend.add_customer("Maria", "BANAI")
        fake_backend.add_sale(customer["id"], quantity=4)

        response = logged_in.get("/dashboard?preset=7D")

        assert_response(response, 200, "Dashboard", "ledger/routes/dashboard.py:dashboard_route")
        sections = response.get_json()["sections"]
        assert sections["kpis"]["data"]["current"]["quantity"] == 4
        assert sections["locations"]["data"][0]["location"] == "BANAI"
        assert len(sections["trend"]["data"]) == 7

    def test_failing_section_isolated(self, logged_in, fake_backend):
        fake_backend.overrides[("GET", "/debts/metrics")] = (500, {"message": "boom"})

        response = logged_in.get("/dashboard")

        assert_response(response, 200, "One section down", "ledger/services/dashboard_service.py:run_section")
        sections = response.get_json()["sections"]
        assert sections["debts"]["status"] == "error"
        assert sections["debts"]["retry_url"].startswith("/dashboard")
        assert sections["kpis"]["status"] == "ok"

    def test_bad_preset(self, logged_in):
        assert logged_in.get("/dashboard?preset=5Y").status_code == 400


class TestCustomerRoutes:

    def test_new_customer_gets_default_credit_limit(self, logged_in, fake_backend):
        fake_backend.settings["defaultCreditLimit"] = 750

        response = logged_in.post("/customers", json={"name": "Walk-In Customer", "location": "WALK_IN"})

        assert_response(response, 201, "Create customer", "ledger/routes/customers.py:create_route")
        assert response.get_json()["customer"]["credit_limit"] == 750

    def test_detail_shows_dormant_price(self, logged_in, fake_backend):
        fake_backend.settings["enableCustomPricing"] = False
        customer = fake_backend.add_customer("Ana", custom_unit_price=30, credit_limit=200)
        fake_backend.outstanding[customer["id"]] = 50

        body = logged_in.get(f"/customers/{customer['id']}").get_json()

        assert body["pricing"]["dormant"] is True
        assert body["pricing"]["effective_price"] == 25
        assert body["credit_utilization"] == 25

    @pytest.mark.sales
    def test_purchase_history_grouped_by_date(self, logged_in, fake_backend):
        ana = fake_backend.add_customer("Ana", "BANAI")
        ben = fake_backend.add_customer("Ben", "URBAN")
        fake_backend.add_sale(ana["id"], quantity=2, date="2024-01-14")
        fake_backend.add_sale(ana["id"], quantity=3, date="2024-01-15")
        fake_backend.add_sale(ben["id"], quantity=9, date="2024-01-15")

        response = logged_in.get(f"/customers/{ana['id']}/sales")

        assert_response(response, 200, "Customer history", "ledger/routes/customers.py:history_route")
        body = response.get_json()
        assert [group["date"] for group in body["timeline"]] == ["2024-01-15", "2024-01-14"]
        assert body["summary"]["total_containers"] == 5
        assert body["summary"]["total_entries"] == 2
        assert body["summary"]["total_sales"] == 125
        assert body["summary"]["average_per_entry"] == 62.5
        assert fake_backend.calls("GET", "/sales")[-1].url.params["customerId"] == ana["id"]

    def test_purchase_history_for_unknown_customer(self, logged_in):
        response = logged_in.get("/customers/c404/sales")

        assert_response(response, 404, "Unknown customer history", "ledger/routes/customers.py:history_route")


class TestDebtRoutes:

    @pytest.fixture
    def customer(self, fake_backend):
        return fake_backend.add_customer("Maria", "BANAI", credit_limit=500)

    @pytest.mark.debts
    def test_partial_payment_recorded(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"], quantity=4, payment_type="CREDIT")
        payment_id = sale["payment"]["id"]

        response = logged_in.post(f"/debts/payments/{payment_id}/record", json={"amount": 40})

        assert_response(response, 200, "Partial payment", "ledger/routes/debts.py:record_payment_route")
        body = response.get_json()
        assert body["payment"]["status"] == "PARTIAL"
        assert body["payment"]["remaining"] == 60
        assert body["preview"]["after"] == 60

    @pytest.mark.debts
    def test_payment_above_remaining_rejected(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"], quantity=4, payment_type="CREDIT")

        response = logged_in.post(f"/debts/payments/{sale['payment']['id']}/record", json={"amount": 150})

        assert_response(response, 400, "Overpayment", "ledger/validation.py:validate_payment_amount")
        assert fake_backend.calls("POST", f"/payments/{sale['payment']['id']}/record") == []

    @pytest.mark.debts
    def test_non_text_payment_method_rejected(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"], quantity=4, payment_type="CREDIT")

        response = logged_in.post(
            f"/debts/payments/{sale['payment']['id']}/record", json={"amount": 10, "payment_method": 7},
        )

        assert_response(response, 400, "Numeric payment method", "ledger/validation.py:validate_payment_method")
        assert "payment_method" in response.get_json()["errors"]

    @pytest.mark.debts
    def test_unknown_payment_is_not_found(self, logged_in, fake_backend):
        fake_backend.overrides[("GET", "/payments/p-missing")] = (200, {"success": True, "data": None})

        response = logged_in.post("/debts/payments/p-missing/record", json={"amount": 10})

        assert_response(response, 404, "Missing payment record", "ledger/routes/debts.py:record_payment_route")
        assert fake_backend.calls("POST", "/payments/p-missing/record") == []

    @pytest.mark.debts
    def test_payment_recorded_without_echo_reports_expected_state(self, logged_in, fake_backend, customer):
        sale = fake_backend.add_sale(customer["id"], quantity=4, payment_type="CREDIT")
        payment_id = sale["payment"]["id"]
        fake_backend.overrides[("POST", f"/payments/{payment_id}/record")] = (200, {"success": True, "data": None})

        response = logged_in.post(f"/debts/payments/{payment_id}/record", json={"amount": 40})

        assert_response(response, 200, "Payment accepted, empty body", "ledger/routes/debts.py:record_payment_route")
        body = response.get_json()
        assert body["payment"]["status"] == "PARTIAL"
        assert body["payment"]["remaining"] == 60
        assert body["preview"]["after"] == 60

    @pytest.mark.debts
    def test_outstanding_sorted_with_utilization(self, logged_in, fake_backend, customer):
        other = fake_backend.add_customer("Ben", "URBAN")
        fake_backend.outstanding.update({customer["id"]: 100, other["id"]: 300})

        body = logged_in.get("/debts/outstanding").get_json()

        assert [c["customer_name"] for c in body["customers"]] == ["Ben", "Maria"]
        assert body["customers"][1]["credit_utilization"] == 20
        assert body["total_outstanding"] == 400

    @pytest.mark.debts
    def test_debt_tab_payment_and_overpayment(self, logged_in, fake_backend, customer):
        fake_backend.debt_balance[customer["id"]] = 100

        rejected = logged_in.post("/debts/payment", json={"customer_id": customer["id"], "amount": 150})
        accepted = logged_in.post("/debts/payment", json={"customer_id": customer["id"], "amount": 40})

        assert_response(rejected, 400, "Debt overpayment", "ledger/validation.py:validate_debt_payment")
        assert rejected.get_json()["error"] == "Overpayment is not allowed"
        assert_response(accepted, 201, "Debt payment", "ledger/routes/debts.py:payment_route")
        assert accepted.get_json()["preview"]["after"] == 60
        assert fake_backend.debt_balance[customer["id"]] == 60

    @pytest.mark.debts
    def test_charge_uses_utc_timestamp(self, logged_in, fake_backend, customer):
        response = logged_in.post("/debts/charge", json={"customer_id": customer["id"], "containers": 2})

        assert_response(response, 201, "Debt charge", "ledger/routes/debts.py:charge_route")
        sent = json.loads(fake_backend.calls("POST", "/debts/charge")[0].content)
        assert sent["containers"] == 2
        assert fake_backend.debt_transactions[0]["transactionDate"].endswith("Z")
        assert fake_backend.debt_balance[customer["id"]] == 50

    @pytest.mark.debts
    def test_adjustment_cannot_go_negative(self, logged_in, fake_backend, customer):
        fake_backend.debt_balance[customer["id"]] = 30

        response = logged_in.post("/debts/adjustment", json={
            "customer_id": customer["id"], "amount": -50, "reason": "Miscount",
        })

        assert_response(response, 400, "Negative adjustment", "ledger/validation.py:validate_debt_adjustment")

    @pytest.mark.debts
    def test_reminder_notes(self, logged_in, fake_backend, customer):
        created = logged_in.post(f"/debts/customers/{customer['id']}/reminders", json={"note": "Called, will pay Friday"})
        blank = logged_in.post(f"/debts/customers/{customer['id']}/reminders", json={"note": "  "})
        detail = logged_in.get(f"/debts/customers/{customer['id']}").get_json()

        assert created.status_code == 201
        assert blank.status_code == 400
        assert detail["reminders"][0]["note"] == "Called, will pay Friday"
        assert detail["days_since_last_reminder"] == 0


class TestReportRoutes:

    @pytest.mark.reports
    def test_daily_csv_download(self, logged_in, fake_backend):
        fake_backend.daily_report = {
            "summary": {"date": "2024-01-15", "totalPayments": 1, "totalAmount": 50, "paymentMethods": {"CASH": 50}},
            "payments": [{"id": "p1", "amount": 50, "paidAmount": 50, "status": "PAID", "notes": "a, b",
                          "paidAt": "2024-01-15T02:00:00Z", "customer": {"id": "c1", "name": "Ana"}}],
        }

        response = logged_in.get("/reports/daily.csv?date=2024-01-15")

        assert_response(response, 200, "Daily CSV", "ledger/routes/reports.py:daily_csv_route")
        assert response.headers["Content-Type"].startswith("text/csv")
        assert 'filename="daily-payments-2024-01-15.csv"' in response.headers["Content-Disposition"]
        assert '"a, b"' in response.get_data(as_text=True)

    @pytest.mark.reports
    def test_bad_report_date(self, logged_in):
        assert logged_in.get("/reports/daily?date=15/01/2024").status_code == 400

    @pytest.mark.reports
    def test_aging_falls_back_to_balances(self, logged_in, fake_backend):
        customer = fake_backend.add_customer("Ana", daysPastDue=45)
        fake_backend.outstanding[customer["id"]] = 120

        response = logged_in.get("/reports/aging")

        assert_response(response, 200, "Aging fallback", "ledger/routes/reports.py:_aging_report")
        body = response.get_json()
        assert body["summary"]["total_outstanding"] == 120
        assert body["buckets"][1]["amount"] == 120

    @pytest.mark.reports
    def test_aging_csv_filename_from_report(self, logged_in, fake_backend):
        fake_backend.aging_report = {
            "summary": {"totalCustomers": 0, "totalOutstanding": 0},
            "customers": [],
            "generatedAt": "2024-02-01T08:00:00Z",
        }

        response = logged_in.get("/reports/aging.csv")

        assert 'filename="aging-report-2024-02-01.csv"' in response.headers["Content-Disposition"]


class TestSettingsRoutes:

    @pytest.mark.settings
    def test_read_settings(self, logged_in):
        body = logged_in.get("/settings").get_json()

        assert body["settings"]["unit_price"] == 25
        assert body["loaded"] is True

    @pytest.mark.settings
    def test_admin_updates_unit_price(self, logged_in, fake_backend):
        response = logged_in.put("/settings", json={"unit_price": 30})

        assert_response(response, 200, "Update unit price", "ledger/routes/settings.py:update_settings_route")
        assert fake_backend.settings["unitPrice"] == 30
        assert logged_in.get("/settings").get_json()["settings"]["unit_price"] == 30

    @pytest.mark.settings
    def test_reset_keeps_custom_pricing_toggle(self, logged_in, fake_backend):
        fake_backend.settings.update({"unitPrice": 40, "enableCustomPricing": False})

        body = logged_in.post("/settings/reset").get_json()

        assert body["settings"]["unit_price"] == 25
        assert body["settings"]["enable_custom_pricing"] is False

    @pytest.mark.settings
    def test_staff_cannot_change_settings(self, client):
        client.post("/login", json={"username": "staff", "passcode": STAFF_PASSCODE})

        response = client.put("/settings", json={"unit_price": 1})

        assert_response(response, 403, "Staff edits settings", "ledger/decorators.py:require_admin")

    @pytest.mark.settings
    def test_user_limit_enforced(self, logged_in, fake_backend):
        first = logged_in.post("/settings/users", json={"username": "third", "passcode": "111111"})
        second = logged_in.post("/settings/users", json={"username": "fourth", "passcode": "222222"})

        assert first.status_code == 201
        assert second.status_code == 400
        assert len(fake_backend.users) == 3

    @pytest.mark.settings
    def test_admin_cannot_delete_self(self, logged_in):
        response = logged_in.delete("/settings/users/u1")

        assert_response(response, 400, "Self delete", "ledger/routes/settings.py:delete_user_route")
