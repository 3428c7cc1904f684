# Overview: Declarative payload policies; coerce and validate JSON bodies before they reach services.

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from .errors import ValidationError
from .models.inventory import MANUAL_ADJUSTMENT_TYPES
from .models.auth import VALID_ROLES
from .models.invoices import INVOICE_STATUSES
from .models.shipments import SHIPMENT_STATUSES
from .time_utils import from_epoch_ms

# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MISSING = object()


@dataclass(frozen=True)
class FieldRule:
    """
    One field of a payload.

    kind: "int" | "number" | "str" | "email" | "bool" | "timestamp" | "list"
    """
    kind: str
    required: bool = False
    nullable: bool = False
    default: Any = _MISSING
    min_value: float | None = None
    max_value: float | None = None
    max_length: int | None = None
    choices: tuple | None = None
    nonzero: bool = False
    min_items: int | None = None
    item_policy: "PayloadPolicy | None" = None


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer:
    - fields: what clients are allowed to set (security boundary)
    - required / default / range rules per field

    Unknown keys are rejected rather than silently dropped.
    """
    fields: dict[str, FieldRule] = field(default_factory=dict)

    def without(self, *names: str) -> "PayloadPolicy":
        return PayloadPolicy({k: v for k, v in self.fields.items() if k not in names})


class _FieldProblem(Exception):
    pass


def _coerce_int(value: Any) -> int:
    # Strict: reject floats, bools and scientific notation
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise _FieldProblem("must be an integer")
        if 'e' in stripped.lower():
            raise _FieldProblem("must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise _FieldProblem("must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise _FieldProblem("must be an integer")
    if isinstance(value, float):
        raise _FieldProblem("must be an integer, not a decimal")
    raise _FieldProblem("must be an integer")


def _coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise _FieldProblem("must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise _FieldProblem("must be a number")
    if not isinstance(value, (int, float)):
        raise _FieldProblem("must be a number")
    # JSON bodies may carry NaN / Infinity literals
    if isinstance(value, float) and not math.isfinite(value):
        raise _FieldProblem("must be a finite number")
    return value


def _coerce(rule: FieldRule, value: Any, path: str, errors: list[dict]) -> Any:
    kind = rule.kind

    if kind == "int":
        value = _coerce_int(value)
    elif kind == "number":
        value = _coerce_number(value)
    elif kind in ("str", "email"):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise _FieldProblem("must be a string")
        value = str(value).strip()
        if rule.required and value == "":
            raise _FieldProblem("cannot be blank")
        if rule.max_length and len(value) > rule.max_length:
            raise _FieldProblem(f"exceeds max length {rule.max_length}")
        if kind == "email" and value and not EMAIL_RE.match(value):
            raise _FieldProblem("must be a valid email address")
        if kind == "email" and value == "":
            value = None
    elif kind == "bool":
        if not isinstance(value, bool):
            raise _FieldProblem("must be a boolean")
    elif kind == "timestamp":
        try:
            value = from_epoch_ms(value)
        except (ValueError, OverflowError, OSError):
            raise _FieldProblem("must be epoch milliseconds")
    elif kind == "list":
        if not isinstance(value, list):
            raise _FieldProblem("must be a list")
        if rule.min_items is not None and len(value) < rule.min_items:
            raise _FieldProblem(f"must contain at least {rule.min_items} item(s)")
        if rule.item_policy is not None:
            cleaned = []
            for i, item in enumerate(value):
                cleaned.append(_validate(item, rule.item_policy, False, f"{path}[{i}].", errors))
            value = cleaned

    if rule.choices is not None and value not in rule.choices:
        raise _FieldProblem(f"must be one of: {', '.join(str(c) for c in rule.choices)}")
    if kind in ("int", "number"):
        if rule.min_value is not None and value < rule.min_value:
            raise _FieldProblem(f"must be >= {rule.min_value}")
        if rule.max_value is not None and value > rule.max_value:
            raise _FieldProblem(f"must be <= {rule.max_value}")
        if rule.nonzero and value == 0:
            raise _FieldProblem("must not be zero")
    return value


def _validate(payload: Any, policy: PayloadPolicy, partial: bool, prefix: str, errors: list[dict]) -> dict:
    if not isinstance(payload, dict):
        errors.append({"field": prefix.rstrip(".") or "body", "message": "must be an object"})
        return {}

    cleaned: dict = {}

    for key in payload:
        if key not in policy.fields:
            errors.append({"field": f"{prefix}{key}", "message": "field not allowed"})

    for name, rule in policy.fields.items():
        path = f"{prefix}{name}"
        if name not in payload:
            if partial:
                continue
            if rule.required:
                errors.append({"field": path, "message": "is required"})
            elif rule.default is not _MISSING:
                cleaned[name] = rule.default
            continue

        raw = payload[name]
        if raw is None:
            if rule.nullable:
                cleaned[name] = None
            else:
                errors.append({"field": path, "message": "cannot be null"})
            continue

        try:
            cleaned[name] = _coerce(rule, raw, path, errors)
        except _FieldProblem as exc:
            errors.append({"field": path, "message": str(exc)})

    return cleaned


def validate_payload(payload: Any, policy: PayloadPolicy, *, partial: bool = False) -> dict:
    """
    Validates + normalizes an incoming JSON body against a policy.

    partial=False: create semantics (required fields enforced, defaults applied)
    partial=True: patch semantics (only provided keys are validated)

    Returns the cleaned dict. Raises ValidationError listing every problem
    found, each as {"field": "items[0].quantity", "message": "..."}.
    """
    if payload is None:
        payload = {}
    errors: list[dict] = []
    cleaned = _validate(payload, policy, partial, "", errors)
    if errors:
        raise ValidationError("Validation error", errors)
    if partial and not cleaned:
        raise ValidationError("Validation error", [{"field": "body", "message": "no updatable fields provided"}])
    return cleaned


def _money(**kw) -> FieldRule:
    return FieldRule("int", min_value=0, max_value=MAX_PRICE_CENTS, **kw)


def _text(max_length: int | None = None) -> FieldRule:
    return FieldRule("str", nullable=True, max_length=max_length)


LOGIN_POLICY = PayloadPolicy({
    "email": FieldRule("str", required=True, max_length=255),
    "password": FieldRule("str", required=True),
})

PRODUCT_POLICY = PayloadPolicy({
    "sku": FieldRule("str", required=True, max_length=64),
    "name": FieldRule("str", required=True, max_length=255),
    "description": _text(),
    "category": _text(120),
    "unit_price_cents": _money(default=0),
    "cost_price_cents": _money(default=0),
    "unit": FieldRule("str", default="unit", max_length=32),
    "reorder_point": FieldRule("int", min_value=0, default=0),
    "reorder_quantity": FieldRule("int", min_value=0, default=0),
    "location": _text(120),
    "opening_quantity": FieldRule("int", min_value=0, default=0),
})
PRODUCT_UPDATE_POLICY = PRODUCT_POLICY.without("opening_quantity")

ADJUSTMENT_POLICY = PayloadPolicy({
    "transaction_type": FieldRule("str", required=True, choices=MANUAL_ADJUSTMENT_TYPES),
    "quantity_change": FieldRule("int", required=True, nonzero=True),
    "notes": _text(255),
})

ORDER_ITEM_POLICY = PayloadPolicy({
    "product_id": FieldRule("int", required=True, min_value=1),
    "quantity": FieldRule("int", required=True, min_value=1),
    "unit_price_cents": _money(),
    "discount_pct": FieldRule("number", min_value=0, max_value=100, default=0),
})

CREATE_ORDER_POLICY = PayloadPolicy({
    "customer_id": FieldRule("int", required=True, min_value=1),
    "shipping_address": _text(),
    "notes": _text(),
    "discount_cents": _money(default=0),
    "tax_cents": _money(default=0),
    "items": FieldRule("list", required=True, min_items=1, item_policy=ORDER_ITEM_POLICY),
})

UPDATE_ORDER_POLICY = PayloadPolicy({
    "shipping_address": _text(),
    "notes": _text(),
    "discount_cents": _money(),
    "tax_cents": _money(),
})

ORDER_STATUS_POLICY = PayloadPolicy({
    "status": FieldRule(
        "str",
        required=True,
        choices=("confirmed", "processing", "shipped", "delivered", "cancelled"),
    ),
})

CUSTOMER_POLICY = PayloadPolicy({
    "name": FieldRule("str", required=True, max_length=255),
    "email": FieldRule("email", nullable=True, max_length=255),
    "phone": _text(64),
    "company": _text(255),
    "billing_address": _text(),
    "shipping_address": _text(),
    "notes": _text(),
})

SUPPLIER_POLICY = PayloadPolicy({
    "name": FieldRule("str", required=True, max_length=255),
    "contact_name": _text(255),
    "email": FieldRule("email", nullable=True, max_length=255),
    "phone": _text(64),
    "address": _text(),
    "payment_terms": _text(120),
    "notes": _text(),
})

PO_ITEM_POLICY = PayloadPolicy({
    "product_id": FieldRule("int", required=True, min_value=1),
    "quantity_ordered": FieldRule("int", required=True, min_value=1),
    "unit_cost_cents": _money(),
})

CREATE_PO_POLICY = PayloadPolicy({
    "supplier_id": FieldRule("int", required=True, min_value=1),
    "expected_date": FieldRule("timestamp", nullable=True),
    "notes": _text(),
    "items": FieldRule("list", required=True, min_items=1, item_policy=PO_ITEM_POLICY),
})

PO_STATUS_POLICY = PayloadPolicy({
    "status": FieldRule("str", required=True, choices=("sent", "confirmed", "cancelled")),
})

RECEIVE_LINE_POLICY = PayloadPolicy({
    "id": FieldRule("int", required=True, min_value=1),
    "quantity_received": FieldRule("int", required=True, min_value=0),
})

RECEIVE_POLICY = PayloadPolicy({
    "items": FieldRule("list", required=True, min_items=1, item_policy=RECEIVE_LINE_POLICY),
})

INVOICE_STATUS_POLICY = PayloadPolicy({
    "status": FieldRule("str", required=True, choices=INVOICE_STATUSES),
    "amount_paid_cents": _money(),
    "notes": _text(),
})

SUPPLIER_PRODUCT_POLICY = PayloadPolicy({
    "product_id": FieldRule("int", required=True, min_value=1),
    "supplier_sku": _text(64),
    "cost_price_cents": _money(default=0),
    "lead_time_days": FieldRule("int", min_value=0, default=0),
    "min_order_quantity": FieldRule("int", min_value=1, default=1),
    "is_preferred": FieldRule("bool", default=False),
})

SHIPMENT_POLICY = PayloadPolicy({
    "order_id": FieldRule("int", required=True, min_value=1),
    "carrier": _text(120),
    "tracking_number": _text(120),
    "estimated_delivery": FieldRule("timestamp", nullable=True),
    "notes": _text(),
})

SHIPMENT_STATUS_POLICY = PayloadPolicy({
    "status": FieldRule("str", required=True, choices=SHIPMENT_STATUSES),
    "carrier": _text(120),
    "tracking_number": _text(120),
    "actual_delivery": FieldRule("timestamp", nullable=True),
})

CREATE_USER_POLICY = PayloadPolicy({
    "name": FieldRule("str", required=True, max_length=120),
    "email": FieldRule("email", required=True, max_length=255),
    "password": FieldRule("str", required=True),
    "role": FieldRule("str", required=True, choices=VALID_ROLES),
})

UPDATE_USER_POLICY = PayloadPolicy({
    "name": FieldRule("str", required=True, max_length=120),
    "email": FieldRule("email", required=True, max_length=255),
    "role": FieldRule("str", required=True, choices=VALID_ROLES),
    "is_active": FieldRule("bool"),
})

UPDATE_ME_POLICY = PayloadPolicy({
    "name": FieldRule("str", required=True, max_length=120),
    "password": FieldRule("str", required=True),
})
