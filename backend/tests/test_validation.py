"""
Payload policy tests.
"""

from datetime import datetime

import pytest

from backoffice.errors import ValidationError
from backoffice.validation import (
    ADJUSTMENT_POLICY,
    CREATE_ORDER_POLICY,
    CREATE_PO_POLICY,
    PRODUCT_UPDATE_POLICY,
    validate_payload,
)


def _fields(exc_info) -> set[str]:
    return {e["field"] for e in exc_info.value.errors}


class TestValidatePayload:

    def test_defaults_are_applied_on_create(self):
        data = validate_payload(
            {"customer_id": 1, "items": [{"product_id": 2, "quantity": "3"}]},
            CREATE_ORDER_POLICY,
        )
        assert data["discount_cents"] == 0
        assert data["tax_cents"] == 0
        assert data["items"] == [{"product_id": 2, "quantity": 3, "discount_pct": 0}]

    def test_nested_errors_carry_paths(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload(
                {"customer_id": 1, "items": [{"product_id": 2, "quantity": 0, "discount_pct": 150}]},
                CREATE_ORDER_POLICY,
            )
        assert _fields(exc) == {"items[0].quantity", "items[0].discount_pct"}
        assert exc.value.status_code == 422

    def test_empty_items(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload({"customer_id": 1, "items": []}, CREATE_ORDER_POLICY)
        assert _fields(exc) == {"items"}

    @pytest.mark.parametrize("value", [1.5, "1e3", True, "abc"])
    def test_integers_are_strict(self, value):
        with pytest.raises(ValidationError):
            validate_payload({"transaction_type": "adjustment", "quantity_change": value}, ADJUSTMENT_POLICY)

    def test_zero_adjustment(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload({"transaction_type": "adjustment", "quantity_change": 0}, ADJUSTMENT_POLICY)
        assert _fields(exc) == {"quantity_change"}

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload({"name": "X", "quantity_on_hand": 5}, PRODUCT_UPDATE_POLICY, partial=True)
        assert _fields(exc) == {"quantity_on_hand"}

    def test_partial_requires_something(self):
        with pytest.raises(ValidationError):
            validate_payload({}, PRODUCT_UPDATE_POLICY, partial=True)

    def test_timestamps_are_epoch_ms(self):
        data = validate_payload(
            {"supplier_id": 1, "expected_date": 0, "items": [{"product_id": 1, "quantity_ordered": 1}]},
            CREATE_PO_POLICY,
        )
        assert data["expected_date"] == datetime(1970, 1, 1)

    def test_body_must_be_an_object(self):
        with pytest.raises(ValidationError):
            validate_payload(["not", "a", "dict"], ADJUSTMENT_POLICY)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "-Infinity", "nan"])
    def test_non_finite_numbers_are_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            validate_payload(
                {"customer_id": 1, "items": [{"product_id": 2, "quantity": 1, "discount_pct": value}]},
                CREATE_ORDER_POLICY,
            )
        assert _fields(exc) == {"items[0].discount_pct"}

    @pytest.mark.parametrize("value", [10 ** 30, -(10 ** 30), float("nan")])
    def test_out_of_range_timestamps_are_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            validate_payload(
                {"supplier_id": 1, "expected_date": value, "items": [{"product_id": 1, "quantity_ordered": 1}]},
                CREATE_PO_POLICY,
            )
        assert _fields(exc) == {"expected_date"}
