# Ledger Test Suite - Shared Configuration and Fixtures
#
# This module provides:
# - FakeBackend: an in-memory ledger REST API served through httpx.MockTransport
# - Flask app / test client / CLI runner fixtures wired to the fake backend
# - A logged-in client and a bare LedgerApi for service-level tests
# - Failure message formatting

import itertools
import json
import re
import threading
from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from ledger import create_app
from ledger.api import ApiClient, LedgerApi, MemoryTokenStore
from ledger.time_utils import to_utc_z, today_iso, utcnow


BASE_URL = "http://ledger.test/api"
ADMIN_PASSCODE = "123456"
STAFF_PASSCODE = "654321"


# =============================================================================
# FAILURE MESSAGE HELPER
# =============================================================================

class TestFailure(Exception):
    """
    Readable failure with scenario, expected/actual and where to look.
    """
    __test__ = False

    def __init__(self, scenario: str, expected: str, actual: str, code_location: str, response=None):
        lines = [
            "",
            "=" * 80,
            f"SCENARIO: {scenario}",
            f"EXPECTED: {expected}",
            f"ACTUAL: {actual}",
            f"CODE LOCATION: {code_location}",
        ]
        if response is not None:
            lines.append(f"RESPONSE BODY: {response.get_data(as_text=True)[:1000]}")
        lines.append("=" * 80)
        super().__init__("\n".join(lines))


def assert_response(response, expected_status: int, scenario: str, code_location: str):
    if response.status_code != expected_status:
        raise TestFailure(
            scenario=scenario,
            expected=f"HTTP {expected_status}",
            actual=f"HTTP {response.status_code}",
            code_location=code_location,
            response=response,
        )


# =============================================================================
# FAKE BACKEND
# =============================================================================

def ok(data: Any = None, **extra) -> Dict:
    body = {"success": True, "data": data}
    body.update(extra)
    return body


class FakeBackend:
    """
    Stateful stand-in for the ledger REST API.

    Records every request in `requests`. `overrides[(METHOD, path)]` may
    hold a (status, body) tuple or a callable(request) -> httpx.Response to
    inject failures. Access tokens are checked on every non-auth call.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self.requests: list = []
        self.overrides: Dict[tuple, Any] = {}

        self.users = [
            {"id": "u1", "username": "admin", "role": "ADMIN", "active": True, "passcode": ADMIN_PASSCODE},
            {"id": "u2", "username": "staff", "role": "STAFF", "active": True, "passcode": STAFF_PASSCODE},
        ]
        self.valid_access: set = set()
        self.refresh_pairs: Dict[str, tuple] = {}
        self.refresh_calls = 0
        self.refresh_delay: Optional[threading.Event] = None

        self.settings: Dict[str, Any] = {"unitPrice": 25, "enableCustomPricing": True, "enableCreditFeature": True}
        self.customers: Dict[str, dict] = {}
        self.sales: Dict[str, dict] = {}
        self.payments: Dict[str, dict] = {}
        self.outstanding: Dict[str, float] = {}
        self.debt_balance: Dict[str, float] = {}
        self.debt_transactions: list = []
        self.reminders: list = []
        self.daily_report: Optional[dict] = None
        self.aging_report: Optional[dict] = None

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def issue_tokens(self, access: str = "access-1", refresh: str = "refresh-1", rotated=("access-2", "refresh-2")):
        self.valid_access.add(access)
        if rotated:
            self.refresh_pairs[refresh] = rotated
        return access, refresh

    def expire(self, access: str) -> None:
        self.valid_access.discard(access)

    def add_customer(self, name="Maria", location="BANAI", credit_limit=None, custom_unit_price=None, **extra) -> dict:
        customer = {
            "id": extra.pop("id", None) or self.next_id("c"),
            "name": name,
            "location": location,
            "creditLimit": credit_limit,
            "customUnitPrice": custom_unit_price,
            "createdAt": to_utc_z(utcnow()),
        }
        customer.update(extra)
        self.customers[customer["id"]] = customer
        return customer

    def add_sale(self, customer_id, quantity=1, unit_price=25.0, payment_type="CASH", date=None, created_at=None) -> dict:
        sale = {
            "id": self.next_id("s"),
            "customerId": customer_id,
            "quantity": quantity,
            "unitPrice": unit_price,
            "total": round(quantity * unit_price, 2),
            "paymentType": payment_type,
            "date": date or today_iso(),
            "createdAt": created_at or to_utc_z(utcnow()),
        }
        self.sales[sale["id"]] = sale
        if payment_type == "CREDIT":
            self.outstanding[customer_id] = round(self.outstanding.get(customer_id, 0) + sale["total"], 2)
            payment = {
                "id": self.next_id("p"),
                "saleId": sale["id"],
                "customerId": customer_id,
                "amount": sale["total"],
                "paidAmount": 0,
                "status": "UNPAID",
                "createdAt": sale["createdAt"],
            }
            self.payments[payment["id"]] = payment
            sale["payment"] = payment
        return sale

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> list:
        return [r for r in self.requests if r.method == method and r.url.path == "/api" + path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):] or "/"
        with self._lock:
            self.requests.append(request)

        override = self.overrides.get((request.method, path))
        if override is not None:
            if callable(override):
                return override(request)
            status, body = override
            return httpx.Response(status, json=body)

        if path == "/":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/auth/login":
            return self._login(request)
        if path == "/auth/refresh":
            return self._refresh(request)

        token = request.headers.get("Authorization", "").replace("Bearer ", "")
        if token not in self.valid_access:
            return httpx.Response(401, json={"success": False, "error": {"message": "Token expired"}})

        body = json.loads(request.content) if request.content else {}
        for method, pattern, handler in self._routes():
            if method != request.method:
                continue
            match = re.fullmatch(pattern, path)
            if match:
                status, payload = handler(request, body, *match.groups())
                return httpx.Response(status, json=payload)
        return httpx.Response(404, json={"success": False, "error": {"message": f"No route {path}"}})

    def _login(self, request):
        body = json.loads(request.content)
        for user in self.users:
            if user["username"] == body.get("username") and user["passcode"] == body.get("passcode"):
                access, refresh = self.issue_tokens(f"access-{user['id']}", f"refresh-{user['id']}")
                public = {k: v for k, v in user.items() if k != "passcode"}
                return httpx.Response(200, json=ok({"user": public, "accessToken": access, "refreshToken": refresh}))
        return httpx.Response(401, json={"success": False, "error": {"message": "Invalid credentials"}})

    def _refresh(self, request):
        if self.refresh_delay is not None:
            self.refresh_delay.wait(timeout=5)
        with self._lock:
            self.refresh_calls += 1
        token = json.loads(request.content).get("refreshToken")
        pair = self.refresh_pairs.pop(token, None)
        if pair is None:
            return httpx.Response(401, json={"success": False, "error": {"message": "Invalid refresh token"}})
        self.valid_access.add(pair[0])
        return httpx.Response(200, json=ok({"accessToken": pair[0], "refreshToken": pair[1]}))

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    def _routes(self):
        return [
            ("POST", r"/auth/logout", lambda r, b: (200, ok(None, message="Logged out"))),
            ("GET", r"/auth/me", self._me),
            ("GET", r"/settings", self._list_settings),
            ("PUT", r"/settings/(\w+)", self._put_setting),
            ("GET", r"/customers", self._list_customers),
            ("POST", r"/customers", self._create_customer),
            ("GET", r"/customers/(\w+)/reminders", self._customer_reminders),
            ("GET", r"/customers/(\w+)/stats", self._customer_stats),
            ("GET", r"/customers/(\w+)", lambda r, b, cid: (200, ok(self.customers.get(cid)))),
            ("PUT", r"/customers/(\w+)", self._update_customer),
            ("GET", r"/sales", self._list_sales),
            ("POST", r"/sales", self._create_sale),
            ("GET", r"/sales/(\w+)", lambda r, b, sid: (200, ok(self.sales.get(sid)))),
            ("DELETE", r"/sales/(\w+)", self._delete_sale),
            ("GET", r"/payments/outstanding", self._outstanding_all),
            ("GET", r"/payments/customers/(\w+)/outstanding", self._customer_outstanding),
            ("GET", r"/payments/customers/(\w+)/payments", self._customer_payments),
            ("GET", r"/payments/(\w+)", lambda r, b, pid: (200, ok(self.payments.get(pid)))),
            ("POST", r"/payments/(\w+)/record", self._record_payment),
            ("GET", r"/reports/payments/daily", self._daily_report),
            ("GET", r"/reports/aging", self._aging_report),
            ("GET", r"/debts/summary", self._debt_summary),
            ("GET", r"/debts/metrics", lambda r, b: (200, ok({"totalOutstanding": sum(self.debt_balance.values())}))),
            ("GET", r"/debts/customer/(\w+)", self._customer_debt),
            ("POST", r"/debts/(charge|payment|adjustment|mark-paid)", self._debt_operation),
            ("POST", r"/reminders/notes", self._create_reminder),
            ("GET", r"/users", lambda r, b: (200, ok([self._public(u) for u in self.users]))),
            ("POST", r"/users", self._create_user),
            ("DELETE", r"/users/(\w+)", self._delete_user),
        ]

    @staticmethod
    def _public(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "passcode"}

    def _me(self, request, body):
        token = request.headers["Authorization"].replace("Bearer ", "")
        for user in self.users:
            if token.endswith(user["id"]):
                return 200, ok(self._public(user))
        return 200, ok(self._public(self.users[0]))

    def _list_settings(self, request, body):
        return 200, ok([{"key": k, "value": str(v), "parsedValue": v} for k, v in self.settings.items()])

    def _put_setting(self, request, body, key):
        value = body.get("value")
        if body.get("type") == "number":
            value = float(value)
        elif body.get("type") == "boolean":
            value = value == "true"
        self.settings[key] = value
        return 200, ok({"key": key, "value": body.get("value"), "parsedValue": value})

    def _list_customers(self, request, body):
        items = list(self.customers.values())
        location = request.url.params.get("location")
        if location:
            items = [c for c in items if c["location"] == location]
        return 200, ok(items, pagination={"page": 1, "limit": 1000, "total": len(items)})

    def _create_customer(self, request, body):
        customer = self.add_customer(**body)
        return 201, ok(customer)

    def _update_customer(self, request, body, customer_id):
        self.customers[customer_id].update(body)
        return 200, ok(self.customers[customer_id])

    def _customer_reminders(self, request, body, customer_id):
        return 200, ok([r for r in self.reminders if r["customerId"] == customer_id])

    def _customer_stats(self, request, body, customer_id):
        sales = [s for s in self.sales.values() if s["customerId"] == customer_id]
        return 200, ok({"totalSales": len(sales), "totalRevenue": sum(s["total"] for s in sales)})

    def _list_sales(self, request, body):
        start = request.url.params.get("startDate")
        end = request.url.params.get("endDate")
        customer_id = request.url.params.get("customerId")
        items = [
            s for s in self.sales.values()
            if (not start or s["date"][:10] >= start) and (not end or s["date"][:10] <= end)
            and (not customer_id or s["customerId"] == customer_id)
        ]
        return 200, ok({"data": items, "pagination": {"total": len(items)}})

    def _create_sale(self, request, body):
        sale = self.add_sale(
            body["customerId"],
            body["quantity"],
            body.get("unitPrice", 25.0),
            body["paymentType"],
            body.get("date"),
        )
        return 201, ok(sale)

    def _delete_sale(self, request, body, sale_id):
        self.sales.pop(sale_id, None)
        return 200, ok(None, message="Sale deleted")

    def _outstanding_all(self, request, body):
        rows = [
            {
                "customerId": cid,
                "customerName": self.customers.get(cid, {}).get("name", ""),
                "location": self.customers.get(cid, {}).get("location", "URBAN"),
                "totalOwed": owed,
                "creditLimit": self.customers.get(cid, {}).get("creditLimit") or 0,
                "daysPastDue": self.customers.get(cid, {}).get("daysPastDue", 0),
            }
            for cid, owed in self.outstanding.items()
        ]
        return 200, ok({"customers": rows})

    def _customer_outstanding(self, request, body, customer_id):
        return 200, ok({"customerId": customer_id, "outstandingBalance": self.outstanding.get(customer_id, 0)})

    def _customer_payments(self, request, body, customer_id):
        return 200, ok({"payments": [p for p in self.payments.values() if p["customerId"] == customer_id]})

    def _record_payment(self, request, body, payment_id):
        payment = self.payments[payment_id]
        payment["paidAmount"] = round((payment.get("paidAmount") or 0) + body["amount"], 2)
        payment["status"] = "PAID" if payment["paidAmount"] >= payment["amount"] else "PARTIAL"
        payment["paymentMethod"] = body.get("paymentMethod")
        self.outstanding[payment["customerId"]] = round(self.outstanding.get(payment["customerId"], 0) - body["amount"], 2)
        return 200, ok(payment)

    def _daily_report(self, request, body):
        if self.daily_report is not None:
            return 200, ok(self.daily_report)
        day = request.url.params.get("date")
        return 200, ok({"summary": {"date": day, "totalPayments": 0, "totalAmount": 0, "paymentMethods": {}}, "payments": []})

    def _aging_report(self, request, body):
        if self.aging_report is None:
            return 500, {"success": False, "error": {"message": "Aging report failed"}}
        return 200, ok(self.aging_report)

    def _debt_summary(self, request, body):
        return 200, ok([
            {"customerId": cid, "customerName": self.customers.get(cid, {}).get("name", ""), "currentBalance": bal}
            for cid, bal in self.debt_balance.items()
        ])

    def _customer_debt(self, request, body, customer_id):
        balance = self.debt_balance.get(customer_id)
        tab = None if balance is None else {"id": f"tab-{customer_id}", "status": "OPEN", "totalBalance": balance}
        transactions = [t for t in self.debt_transactions if t["customerId"] == customer_id]
        return 200, ok({"customer": self.customers.get(customer_id), "tab": tab, "transactions": transactions})

    def _debt_operation(self, request, body, kind):
        customer_id = body["customerId"]
        balance = self.debt_balance.get(customer_id, 0.0)
        if kind == "charge":
            balance += body["containers"] * float(self.settings.get("unitPrice", 25))
        elif kind == "payment":
            balance -= body["amount"]
        elif kind == "adjustment":
            balance += body["amount"]
        else:
            balance = 0.0
        self.debt_balance[customer_id] = round(balance, 2)
        transaction = {
            "id": self.next_id("t"),
            "customerId": customer_id,
            "transactionType": kind.upper().replace("-", "_"),
            "amount": body.get("amount", 0),
            "balanceAfter": self.debt_balance[customer_id],
            "transactionDate": body["transactionDate"],
        }
        self.debt_transactions.append(transaction)
        return 201, ok(transaction)

    def _create_reminder(self, request, body):
        reminder = {
            "id": self.next_id("r"),
            "customerId": body["customerId"],
            "note": body["note"],
            "createdAt": to_utc_z(utcnow()),
        }
        self.reminders.insert(0, reminder)
        return 201, ok(reminder)

    def _create_user(self, request, body):
        user = {"id": self.next_id("u"), "username": body["username"], "role": body.get("role", "STAFF"),
                "active": True, "passcode": body["passcode"]}
        self.users.append(user)
        return 201, ok(self._public(user))

    def _delete_user(self, request, body, user_id):
        self.users = [u for u in self.users if u["id"] != user_id]
        return 200, ok(None, message="User deleted")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(fake_backend, tmp_path):
    """Flask app whose backend calls go to the in-memory fake."""
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "LEDGER_API_URL": BASE_URL,
        "LEDGER_API_TRANSPORT": fake_backend.transport(),
        "LEDGER_TOKEN_FILE": str(tmp_path / "tokens.json"),
        "LEDGER_TIMEZONE": "Asia/Manila",
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def logged_in(client):
    """Test client with an admin session."""
    response = client.post("/login", json={"username": "admin", "passcode": ADMIN_PASSCODE})
    assert_response(response, 200, "Admin login for fixture", "ledger/routes/auth.py:login_route")
    return client


@pytest.fixture
def make_api(fake_backend) -> Callable[..., LedgerApi]:
    """LedgerApi over the fake backend with an in-memory token store."""
    created = []

    def factory(access: Optional[str] = "access-1", refresh: Optional[str] = "refresh-1", current_path=None, refresher=None):
        store = MemoryTokenStore(access, refresh)
        client = ApiClient(
            BASE_URL,
            token_store=store,
            transport=fake_backend.transport(),
            current_path=current_path,
            refresher=refresher,
        )
        api = LedgerApi(client)
        created.append(api)
        return api

    yield factory
    for api in created:
        api.close()


@pytest.fixture
def api(fake_backend, make_api) -> LedgerApi:
    fake_backend.issue_tokens()
    return make_api()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "smoke: Quick smoke tests for critical paths")
    config.addinivalue_line("markers", "auth: Authentication and token refresh tests")
    config.addinivalue_line("markers", "sales: Sales workflow tests")
    config.addinivalue_line("markers", "credit: Credit limit tests")
    config.addinivalue_line("markers", "debts: Debt and payment collection tests")
    config.addinivalue_line("markers", "reports: Reporting tests")
    config.addinivalue_line("markers", "settings: Settings and user management tests")
    config.addinivalue_line("markers", "concurrent: Concurrency tests")
    config.addinivalue_line("markers", "cli: Command line tests")
