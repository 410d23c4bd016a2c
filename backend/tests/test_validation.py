"""Payload validation and money conversion."""

from decimal import Decimal

import pytest

from retailstock.models import Product, Purchase
from retailstock.money import MAX_AMOUNT_CENTS, format_cents, to_cents
from retailstock.validation import (
    MAX_QUANTITY,
    ModelValidationPolicy,
    ValidationError,
    client_name,
    enforce_rules_product,
    enforce_rules_quantity,
    enforce_rules_stock_movement,
    validate_payload,
)

POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "price_cents", "min_stock_level", "is_active"},
    required_on_create={"name", "code", "price_cents"},
)


class TestMoney:
    @pytest.mark.parametrize(
        "value,cents",
        [("40", 4000), ("2.5", 250), (3, 300), (1.1, 110), ("0.005", 1), (Decimal("19.99"), 1999)],
    )
    def test_to_cents(self, value, cents):
        assert to_cents(value) == cents

    @pytest.mark.parametrize("value", ["abc", "", True, "NaN", "Infinity", None])
    def test_to_cents_rejects(self, value):
        with pytest.raises(ValueError):
            to_cents(value)

    def test_format_cents(self):
        assert format_cents(4000) == "40.00"
        assert format_cents(5) == "0.05"
        assert format_cents(None) is None
        assert format_cents(MAX_AMOUNT_CENTS) == "9999999.99"


class TestValidatePayload:
    def test_maps_client_names_to_columns(self, app):
        patch = validate_payload(
            model=Product,
            payload={"name": " Tea ", "code": "TEA", "price": "4.20", "minStockLevel": "3", "isActive": True},
            policy=POLICY,
            partial=False,
        )
        assert patch == {
            "name": "Tea",
            "code": "TEA",
            "price_cents": 420,
            "min_stock_level": 3,
            "is_active": True,
        }

    def test_snake_case_keys_accepted(self, app):
        patch = validate_payload(model=Product, payload={"min_stock_level": 1}, policy=POLICY, partial=True)
        assert patch == {"min_stock_level": 1}

    def test_missing_reports_client_name(self, app):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"name": "Tea", "code": "T"}, policy=POLICY, partial=False)
        assert exc_info.value.field == "price"

    def test_not_writable(self, app):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"versionId": 3}, policy=POLICY, partial=True)
        assert "not allowed" in str(exc_info.value)

    def test_null_for_required_column(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": None}, policy=POLICY, partial=True)

    def test_max_length(self, app):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"code": "X" * 65}, policy=POLICY, partial=True)
        assert exc_info.value.field == "code"

    @pytest.mark.parametrize("value", ["1e3", "2.0", 2.0, [1]])
    def test_strict_integers(self, app, value):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"minStockLevel": value}, policy=POLICY, partial=True)

    def test_integer_out_of_range(self, app):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"minStockLevel": 10**19}, policy=POLICY, partial=True)
        assert exc_info.value.field == "minStockLevel"

    def test_bool_must_be_bool(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"isActive": "yes"}, policy=POLICY, partial=True)

    def test_ignored_fields_dropped(self, app):
        policy = ModelValidationPolicy(
            writable_fields={"quantity"},
            ignored_fields={"totalCost"},
        )
        patch = validate_payload(model=Purchase, payload={"quantity": 2, "totalCost": "1.00"},
                                 policy=policy, partial=True)
        assert patch == {"quantity": 2}

    def test_payload_must_be_object(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload=[1, 2], policy=POLICY, partial=True)


def test_client_name():
    assert client_name("price_cents") == "price"
    assert client_name("department_id") == "departmentId"
    assert client_name("name") == "name"


def test_movement_rules():
    enforce_rules_stock_movement({"type": "out", "quantity": 1, "reason": "donation"})
    with pytest.raises(ValidationError):
        enforce_rules_stock_movement({"type": "out", "quantity": 1, "reason": "promotional"})


def test_quantity_upper_bound():
    enforce_rules_quantity({"quantity": MAX_QUANTITY})
    with pytest.raises(ValidationError) as exc_info:
        enforce_rules_quantity({"quantity": MAX_QUANTITY + 1})
    assert exc_info.value.field == "quantity"


@pytest.mark.parametrize("key,field", [("stock_quantity", "stockQuantity"), ("min_stock_level", "minStockLevel")])
def test_product_stock_upper_bound(key, field):
    enforce_rules_product({key: MAX_QUANTITY})
    with pytest.raises(ValidationError) as exc_info:
        enforce_rules_product({key: MAX_QUANTITY + 1})
    assert exc_info.value.field == field
