# Overview: Client-side copies of backend entities, parsed defensively from API payloads.

"""
Ledger entities as consumed from the remote backend.

The backend owns these records; the client only holds read/write copies
fetched per request. Every `from_dict` accepts the backend's camelCase keys
(and snake_case for locally built payloads) and never assumes optional
fields are present. `to_dict` emits snake_case for the JSON views.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Optional

from .constants import (
    COLLECTION_STATUS_ACTIVE,
    DEFAULT_SETTINGS,
    LOCATION_URBAN,
    PAYMENT_METHOD_CASH,
    PAYMENT_STATUS_UNPAID,
    PAYMENT_TYPE_CASH,
    ROLE_STAFF,
)


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _number(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass
class Customer:
    id: str
    name: str
    location: str = LOCATION_URBAN
    phone: Optional[str] = None
    custom_unit_price: Optional[float] = None
    notes: Optional[str] = None
    credit_limit: Optional[float] = None
    outstanding_balance: float = 0.0
    last_payment_date: Optional[str] = None
    collection_status: str = COLLECTION_STATUS_ACTIVE
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        data = data or {}
        return cls(
            id=str(_pick(data, "id", default="")),
            name=_pick(data, "name", default="Unknown"),
            location=_pick(data, "location", default=LOCATION_URBAN),
            phone=_pick(data, "phone"),
            custom_unit_price=_optional_number(_pick(data, "customUnitPrice", "custom_unit_price")),
            notes=_pick(data, "notes"),
            credit_limit=_optional_number(_pick(data, "creditLimit", "credit_limit")),
            outstanding_balance=_number(_pick(data, "outstandingBalance", "outstanding_balance")),
            last_payment_date=_pick(data, "lastPaymentDate", "last_payment_date"),
            collection_status=_pick(
                data, "collectionStatus", "collection_status", default=COLLECTION_STATUS_ACTIVE
            ),
            created_at=_pick(data, "createdAt", "created_at"),
            updated_at=_pick(data, "updatedAt", "updated_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PaymentTransaction:
    amount: float
    payment_method: str = PAYMENT_METHOD_CASH
    created_at: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentTransaction":
        data = data or {}
        return cls(
            id=_pick(data, "id"),
            amount=_number(_pick(data, "amount")),
            payment_method=_pick(data, "paymentMethod", "payment_method", default=PAYMENT_METHOD_CASH),
            created_at=_pick(data, "createdAt", "created_at", "timestamp"),
            notes=_pick(data, "notes"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Payment:
    id: str
    amount: float
    paid_amount: Optional[float] = None
    status: str = PAYMENT_STATUS_UNPAID
    payment_method: Optional[str] = None
    paid_at: Optional[str] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None
    sale_id: Optional[str] = None
    customer_id: Optional[str] = None
    recorded_by_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    customer: Optional[Customer] = None
    transactions: list[PaymentTransaction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Payment":
        data = data or {}
        customer = _pick(data, "customer")
        return cls(
            id=str(_pick(data, "id", default="")),
            amount=_number(_pick(data, "amount")),
            paid_amount=_optional_number(_pick(data, "paidAmount", "paid_amount")),
            status=_pick(data, "status", default=PAYMENT_STATUS_UNPAID),
            payment_method=_pick(data, "paymentMethod", "payment_method"),
            paid_at=_pick(data, "paidAt", "paid_at"),
            due_date=_pick(data, "dueDate", "due_date"),
            notes=_pick(data, "notes"),
            sale_id=_pick(data, "saleId", "sale_id"),
            customer_id=_pick(data, "customerId", "customer_id"),
            recorded_by_id=_pick(data, "recordedById", "recorded_by_id"),
            created_at=_pick(data, "createdAt", "created_at"),
            updated_at=_pick(data, "updatedAt", "updated_at"),
            customer=Customer.from_dict(customer) if isinstance(customer, dict) else None,
            transactions=[
                PaymentTransaction.from_dict(t)
                for t in _pick(data, "transactions", default=[])
                if isinstance(t, dict)
            ],
        )

    @property
    def remaining(self) -> float:
        """Unpaid remainder, never negative."""
        return max(self.amount - (self.paid_amount or 0.0), 0.0)

    @property
    def collected(self) -> float:
        """What the daily report counts: paid amount, else the requested amount."""
        return self.paid_amount if self.paid_amount is not None else self.amount

    @property
    def latest_activity_at(self) -> Optional[str]:
        return self.paid_at or self.updated_at or self.created_at

    def to_dict(self) -> dict:
        data = asdict(self)
        data["remaining"] = self.remaining
        return data


@dataclass
class Sale:
    id: str
    customer_id: str
    date: str
    quantity: float
    unit_price: float = 0.0
    total: float = 0.0
    payment_type: str = PAYMENT_TYPE_CASH
    user_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    payment: Optional[Payment] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        data = data or {}
        payment = _pick(data, "payment")
        quantity = _number(_pick(data, "quantity"))
        unit_price = _number(_pick(data, "unitPrice", "unit_price"))
        return cls(
            id=str(_pick(data, "id", default="")),
            customer_id=str(_pick(data, "customerId", "customer_id", default="")),
            date=_pick(data, "date", "createdAt", default=""),
            quantity=quantity,
            unit_price=unit_price,
            total=_number(_pick(data, "total"), default=quantity * unit_price),
            payment_type=_pick(data, "paymentType", "payment_type", default=PAYMENT_TYPE_CASH),
            user_id=_pick(data, "userId", "user_id"),
            notes=_pick(data, "notes"),
            created_at=_pick(data, "createdAt", "created_at"),
            updated_at=_pick(data, "updatedAt", "updated_at"),
            payment=Payment.from_dict(payment) if isinstance(payment, dict) else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class OutstandingBalance:
    customer_id: str
    customer_name: str = ""
    location: str = LOCATION_URBAN
    total_owed: float = 0.0
    oldest_debt_date: Optional[str] = None
    days_past_due: int = 0
    credit_limit: float = 0.0
    collection_status: str = COLLECTION_STATUS_ACTIVE
    last_payment_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "OutstandingBalance":
        data = data or {}
        return cls(
            customer_id=str(_pick(data, "customerId", "customer_id", "id", default="")),
            customer_name=_pick(data, "customerName", "customer_name", "name", default=""),
            location=_pick(data, "location", default=LOCATION_URBAN),
            total_owed=_number(_pick(data, "totalOwed", "total_owed", "outstandingBalance")),
            oldest_debt_date=_pick(data, "oldestDebtDate", "oldest_debt_date"),
            days_past_due=int(_number(_pick(data, "daysPastDue", "days_past_due"))),
            credit_limit=_number(_pick(data, "creditLimit", "credit_limit")),
            collection_status=_pick(
                data, "collectionStatus", "collection_status", default=COLLECTION_STATUS_ACTIVE
            ),
            last_payment_date=_pick(data, "lastPaymentDate", "last_payment_date"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Settings:
    unit_price: float = DEFAULT_SETTINGS["unitPrice"]
    currency: str = DEFAULT_SETTINGS["currency"]
    business_name: Optional[str] = DEFAULT_SETTINGS["businessName"]
    enable_custom_pricing: bool = DEFAULT_SETTINGS["enableCustomPricing"]
    enable_credit_feature: bool = DEFAULT_SETTINGS["enableCreditFeature"]
    default_credit_limit: float = DEFAULT_SETTINGS["defaultCreditLimit"]
    days_before_overdue: int = DEFAULT_SETTINGS["daysBeforeOverdue"]

    # backend key -> attribute
    KEY_MAP = {
        "unitPrice": "unit_price",
        "currency": "currency",
        "businessName": "business_name",
        "enableCustomPricing": "enable_custom_pricing",
        "enableCreditFeature": "enable_credit_feature",
        "defaultCreditLimit": "default_credit_limit",
        "daysBeforeOverdue": "days_before_overdue",
    }

    @classmethod
    def from_values(cls, values: Optional[dict] = None) -> "Settings":
        """Defaults overlaid with whatever the backend key/value store holds."""
        merged = dict(DEFAULT_SETTINGS)
        merged.update({k: v for k, v in (values or {}).items() if v is not None})
        return cls(
            unit_price=_number(merged["unitPrice"], DEFAULT_SETTINGS["unitPrice"]),
            currency=str(merged["currency"]),
            business_name=merged.get("businessName"),
            enable_custom_pricing=_bool(merged["enableCustomPricing"], True),
            enable_credit_feature=_bool(merged["enableCreditFeature"], True),
            default_credit_limit=_number(merged["defaultCreditLimit"], DEFAULT_SETTINGS["defaultCreditLimit"]),
            days_before_overdue=int(_number(merged["daysBeforeOverdue"], DEFAULT_SETTINGS["daysBeforeOverdue"])),
        )

    def to_dict(self) -> dict:
        return {attr: getattr(self, attr) for attr in self.KEY_MAP.values()}


@dataclass
class User:
    id: str
    username: str
    role: str = ROLE_STAFF
    active: bool = True
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        data = data or {}
        return cls(
            id=str(_pick(data, "id", default="")),
            username=_pick(data, "username", default=""),
            role=_pick(data, "role", default=ROLE_STAFF),
            active=_bool(_pick(data, "active"), True),
            created_at=_pick(data, "createdAt", "created_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReminderNote:
    id: str
    customer_id: str
    note: str
    reminder_date: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReminderNote":
        data = data or {}
        return cls(
            id=str(_pick(data, "id", default="")),
            customer_id=str(_pick(data, "customerId", "customer_id", default="")),
            note=_pick(data, "note", default=""),
            reminder_date=_pick(data, "reminderDate", "reminder_date"),
            created_by_id=_pick(data, "createdById", "created_by_id"),
            created_at=_pick(data, "createdAt", "created_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AgingCustomer:
    customer_id: str
    customer_name: str
    location: str = LOCATION_URBAN
    current: float = 0.0
    days_31_to_60: float = 0.0
    days_61_to_90: float = 0.0
    over_90_days: float = 0.0
    total_owed: float = 0.0
    collection_status: str = COLLECTION_STATUS_ACTIVE
    last_payment_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AgingCustomer":
        data = data or {}
        return cls(
            customer_id=str(_pick(data, "customerId", "customer_id", default="")),
            customer_name=_pick(data, "customerName", "customer_name", default="Unknown"),
            location=_pick(data, "location", default=LOCATION_URBAN),
            current=_number(_pick(data, "current")),
            days_31_to_60=_number(_pick(data, "days31to60", "days_31_to_60")),
            days_61_to_90=_number(_pick(data, "days61to90", "days_61_to_90")),
            over_90_days=_number(_pick(data, "over90Days", "over_90_days")),
            total_owed=_number(_pick(data, "totalOwed", "total_owed")),
            collection_status=_pick(
                data, "collectionStatus", "collection_status", default=COLLECTION_STATUS_ACTIVE
            ),
            last_payment_date=_pick(data, "lastPaymentDate", "last_payment_date"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AgingReport:
    total_customers: int = 0
    total_outstanding: float = 0.0
    current: float = 0.0
    days_31_to_60: float = 0.0
    days_61_to_90: float = 0.0
    over_90_days: float = 0.0
    customers: list[AgingCustomer] = field(default_factory=list)
    generated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AgingReport":
        data = data or {}
        summary = _pick(data, "summary", default={}) or {}
        return cls(
            total_customers=int(_number(_pick(summary, "totalCustomers", "total_customers"))),
            total_outstanding=_number(_pick(summary, "totalOutstanding", "total_outstanding")),
            current=_number(_pick(summary, "current")),
            days_31_to_60=_number(_pick(summary, "days31to60", "days_31_to_60")),
            days_61_to_90=_number(_pick(summary, "days61to90", "days_61_to_90")),
            over_90_days=_number(_pick(summary, "over90Days", "over_90_days")),
            customers=[
                AgingCustomer.from_dict(c)
                for c in _pick(data, "customers", default=[])
                if isinstance(c, dict)
            ],
            generated_at=_pick(data, "generatedAt", "generated_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DailyPaymentsReport:
    date: str
    total_payments: int = 0
    total_amount: float = 0.0
    payment_methods: dict[str, float] = field(default_factory=dict)
    payments: list[Payment] = field(default_factory=list)
    generated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, *, date: str = "") -> "DailyPaymentsReport":
        data = data or {}
        summary = _pick(data, "summary", default={}) or {}
        payments = [
            Payment.from_dict(p)
            for p in _pick(data, "payments", default=[])
            if isinstance(p, dict)
        ]
        methods = _pick(summary, "paymentMethods", "payment_methods", default={}) or {}
        return cls(
            date=_pick(summary, "date", default=_pick(data, "date", default=date)),
            total_payments=int(_number(
                _pick(summary, "totalPayments", "total_payments",
                      default=_pick(data, "paymentCount", "totalPayments", default=len(payments)))
            )),
            total_amount=_number(_pick(summary, "totalAmount", "total_amount",
                                       default=_pick(data, "totalAmount"))),
            payment_methods={str(k): _number(v) for k, v in methods.items()},
            payments=payments,
            generated_at=_pick(data, "generatedAt", "generated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "total_payments": self.total_payments,
            "total_amount": self.total_amount,
            "payment_methods": self.payment_methods,
            "payments": [p.to_dict() for p in self.payments],
            "generated_at": self.generated_at,
        }


@dataclass
class DebtSummaryItem:
    customer_id: str
    customer_name: str = ""
    location: str = LOCATION_URBAN
    current_balance: float = 0.0
    last_transaction_at: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DebtSummaryItem":
        data = data or {}
        customer = _pick(data, "customer", default={}) or {}
        return cls(
            customer_id=str(_pick(data, "customerId", "customer_id", default=_pick(customer, "id", default=""))),
            customer_name=_pick(data, "customerName", "customer_name", default=_pick(customer, "name", default="")),
            location=_pick(data, "location", default=_pick(customer, "location", default=LOCATION_URBAN)),
            current_balance=_number(_pick(data, "currentBalance", "current_balance", "balance")),
            last_transaction_at=_pick(data, "lastTransactionAt", "last_transaction_at"),
            status=_pick(data, "status"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DebtTransaction:
    id: str
    customer_id: str
    transaction_type: str
    amount: float = 0.0
    balance_after: Optional[float] = None
    containers: Optional[int] = None
    transaction_date: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DebtTransaction":
        data = data or {}
        containers = _pick(data, "containers")
        return cls(
            id=str(_pick(data, "id", default="")),
            customer_id=str(_pick(data, "customerId", "customer_id", default="")),
            transaction_type=_pick(data, "transactionType", "transaction_type", "type", default=""),
            amount=_number(_pick(data, "amount")),
            balance_after=_optional_number(_pick(data, "balanceAfter", "balance_after")),
            containers=int(containers) if containers is not None else None,
            transaction_date=_pick(data, "transactionDate", "transaction_date"),
            notes=_pick(data, "notes"),
        )

    def to_dict(self) -> dict:
        return asdict(self)
