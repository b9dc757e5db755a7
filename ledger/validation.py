from __future__ import annotations

from typing import Any, Optional

from .constants import (
    ALL_LOCATIONS,
    MAX_BUSINESS_NAME_LENGTH,
    MAX_CUSTOMER_NAME_LENGTH,
    MAX_SALE_NOTES_LENGTH,
    MAX_USERS,
    MIN_UNIT_PRICE,
    PASSCODE_LENGTH,
    PAYMENT_METHOD_CASH,
    VALID_COLLECTION_STATUSES,
    VALID_PAYMENT_METHODS,
    VALID_PAYMENT_TYPES,
    VALID_ROLES,
)
from .time_utils import parse_iso_date


class ValidationError(ValueError):
    """
    400-level input problem.

    `errors` maps form field -> message so views can render them inline;
    nothing is submitted while any entry exists.
    """

    def __init__(self, message: str = "Validation failed", errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


def _raise_if_errors(errors: dict[str, str]) -> None:
    if errors:
        first = next(iter(errors.values()))
        raise ValidationError(first, errors)


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_sale_form(data: dict) -> dict:
    """
    Quick-add sale form. Returns the cleaned values:
    customer_id, quantity (whole containers), payment_type, notes.
    """
    errors: dict[str, str] = {}

    customer_id = data.get("customer_id") or data.get("customerId")
    if not customer_id:
        errors["customer_id"] = "Please select a customer"

    raw_quantity = _as_number(data.get("quantity"))
    if raw_quantity is None:
        errors["quantity"] = "Quantity is required"
    elif not raw_quantity.is_integer() or raw_quantity < 1:
        errors["quantity"] = "Quantity must be a whole number of at least 1"

    payment_type = str(data.get("payment_type") or data.get("paymentType") or "CASH").upper()
    if payment_type not in VALID_PAYMENT_TYPES:
        errors["payment_type"] = f"Payment type must be one of: {', '.join(VALID_PAYMENT_TYPES)}"

    notes = data.get("notes")
    if notes is not None and len(str(notes)) > MAX_SALE_NOTES_LENGTH:
        errors["notes"] = f"Notes cannot exceed {MAX_SALE_NOTES_LENGTH} characters"

    _raise_if_errors(errors)
    return {
        "customer_id": str(customer_id),
        "quantity": int(raw_quantity),
        "payment_type": payment_type,
        "notes": notes or None,
    }


def validate_payment_amount(amount: Any, remaining: float, field: str = "amount") -> float:
    """Partial payment: positive and never more than what is still owed."""
    value = _as_number(amount)
    if value is None:
        raise ValidationError("Amount is required", {field: "Amount is required"})
    if value <= 0:
        raise ValidationError("Amount must be greater than zero", {field: "Amount must be greater than zero"})
    if round(value, 2) > round(remaining, 2):
        message = f"Amount cannot exceed the remaining balance of {remaining:.2f}"
        raise ValidationError(message, {field: message})
    return round(value, 2)


def validate_payment_method(method: Any) -> str:
    value = str(method or PAYMENT_METHOD_CASH).upper()
    if value not in VALID_PAYMENT_METHODS:
        message = f"Payment method must be one of: {', '.join(VALID_PAYMENT_METHODS)}"
        raise ValidationError(message, {"payment_method": message})
    return value


def validate_customer_form(data: dict, *, partial: bool = False) -> dict:
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name:
            errors["name"] = "Name is required"
        elif len(name) > MAX_CUSTOMER_NAME_LENGTH:
            errors["name"] = f"Name cannot exceed {MAX_CUSTOMER_NAME_LENGTH} characters"
        cleaned["name"] = name

    if "location" in data or not partial:
        location = data.get("location")
        if location not in ALL_LOCATIONS:
            errors["location"] = "Please select a valid location"
        cleaned["location"] = location

    if "phone" in data:
        phone = (data.get("phone") or "").strip()
        cleaned["phone"] = phone or None

    for key, camel in (("custom_unit_price", "customUnitPrice"), ("credit_limit", "creditLimit")):
        if key not in data and camel not in data:
            continue
        raw = data.get(key, data.get(camel))
        if raw is None or raw == "":
            cleaned[key] = None
            continue
        value = _as_number(raw)
        if value is None:
            errors[key] = "Must be a number"
        elif key == "custom_unit_price" and value < MIN_UNIT_PRICE:
            errors[key] = "Custom price must be greater than zero"
        elif value < 0:
            errors[key] = "Credit limit cannot be negative"
        cleaned[key] = value

    if "collection_status" in data:
        status = data.get("collection_status")
        if status not in VALID_COLLECTION_STATUSES:
            errors["collection_status"] = f"Collection status must be one of: {', '.join(VALID_COLLECTION_STATUSES)}"
        cleaned["collection_status"] = status

    if "notes" in data:
        cleaned["notes"] = data.get("notes") or None

    _raise_if_errors(errors)
    return cleaned


def validate_settings_form(data: dict) -> dict:
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    if "unit_price" in data:
        value = _as_number(data["unit_price"])
        if value is None or value < MIN_UNIT_PRICE:
            errors["unit_price"] = "Unit price must be greater than zero"
        cleaned["unit_price"] = value

    if "default_credit_limit" in data:
        value = _as_number(data["default_credit_limit"])
        if value is None or value < 0:
            errors["default_credit_limit"] = "Credit limit cannot be negative"
        cleaned["default_credit_limit"] = value

    if "days_before_overdue" in data:
        value = _as_number(data["days_before_overdue"])
        if value is None or not value.is_integer() or value < 1:
            errors["days_before_overdue"] = "Days before overdue must be a whole number of at least 1"
        else:
            cleaned["days_before_overdue"] = int(value)

    if "business_name" in data:
        name = (data.get("business_name") or "").strip()
        if len(name) > MAX_BUSINESS_NAME_LENGTH:
            errors["business_name"] = f"Business name cannot exceed {MAX_BUSINESS_NAME_LENGTH} characters"
        cleaned["business_name"] = name or None

    if "currency" in data:
        cleaned["currency"] = str(data["currency"]).upper()

    for flag in ("enable_custom_pricing", "enable_credit_feature"):
        if flag in data:
            if not isinstance(data[flag], bool):
                errors[flag] = f"{flag} must be true or false"
            cleaned[flag] = data[flag]

    _raise_if_errors(errors)
    return cleaned


def validate_passcode(passcode: Any, field: str = "passcode") -> str:
    value = "" if passcode is None else str(passcode)
    if len(value) != PASSCODE_LENGTH or not value.isdigit():
        message = f"Passcode must be exactly {PASSCODE_LENGTH} digits"
        raise ValidationError(message, {field: message})
    return value


def validate_user_form(data: dict, existing_count: int) -> dict:
    errors: dict[str, str] = {}

    if existing_count >= MAX_USERS:
        raise ValidationError(
            f"Maximum of {MAX_USERS} users reached",
            {"username": f"Maximum of {MAX_USERS} users reached"},
        )

    username = (data.get("username") or "").strip()
    if len(username) < 3:
        errors["username"] = "Username must be at least 3 characters"

    role = str(data.get("role") or "STAFF").upper()
    if role not in VALID_ROLES:
        errors["role"] = f"Role must be one of: {', '.join(VALID_ROLES)}"

    try:
        passcode = validate_passcode(data.get("passcode"))
    except ValidationError as e:
        errors.update(e.errors)
        passcode = None

    _raise_if_errors(errors)
    return {"username": username, "role": role, "passcode": passcode}


def validate_date_range(start: Any, end: Any) -> tuple[str, str]:
    errors: dict[str, str] = {}
    parsed = {}
    for field, value in (("start", start), ("end", end)):
        try:
            day = parse_iso_date(value)
        except ValueError:
            day = None
        if day is None:
            errors[field] = f"{field} must be a YYYY-MM-DD date"
        parsed[field] = day

    if not errors and parsed["start"] > parsed["end"]:
        errors["end"] = "End date must be on or after the start date"

    _raise_if_errors(errors)
    return parsed["start"].isoformat(), parsed["end"].isoformat()


def validate_debt_charge(data: dict) -> dict:
    errors: dict[str, str] = {}
    customer_id = data.get("customer_id") or data.get("customerId")
    if not customer_id:
        errors["customer_id"] = "Select a customer"
    containers = _as_number(data.get("containers"))
    if containers is None or containers <= 0 or not containers.is_integer():
        errors["containers"] = "Enter containers > 0"
    _raise_if_errors(errors)
    return {"customer_id": str(customer_id), "containers": int(containers), "notes": data.get("notes") or None}


def validate_debt_payment(data: dict, current_balance: float) -> dict:
    customer_id = data.get("customer_id") or data.get("customerId")
    if not customer_id:
        raise ValidationError("Select a customer", {"customer_id": "Select a customer"})
    value = _as_number(data.get("amount"))
    if value is None or value <= 0:
        raise ValidationError("Enter payment amount > 0", {"amount": "Enter payment amount > 0"})
    if value > current_balance + 0.001:
        raise ValidationError("Overpayment is not allowed", {"amount": "Overpayment is not allowed"})
    return {"customer_id": str(customer_id), "amount": round(value, 2), "notes": data.get("notes") or None}


def validate_debt_adjustment(data: dict, current_balance: float) -> dict:
    """Positive amounts increase what is owed, negative decrease it; never below zero."""
    errors: dict[str, str] = {}
    customer_id = data.get("customer_id") or data.get("customerId")
    if not customer_id:
        errors["customer_id"] = "Select a customer"
    value = _as_number(data.get("amount"))
    if value is None or abs(value) < 0.0001:
        errors["amount"] = "Adjustment amount cannot be zero"
    elif current_balance + value < 0:
        errors["amount"] = "Adjustment would create negative balance"
    reason = (data.get("reason") or "").strip()
    if not reason:
        errors["reason"] = "Reason is required"
    _raise_if_errors(errors)
    return {
        "customer_id": str(customer_id),
        "amount": round(value, 2),
        "reason": reason,
        "notes": (data.get("notes") or "").strip() or None,
    }
