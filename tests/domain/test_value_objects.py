"""Unit tests for domain value objects."""

from decimal import Decimal

import pytest

from wms.domain.exceptions import ValidationError
from wms.domain.model.value_objects import Money, Quantity


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation_defaults_to_lira(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "TRY"

    def test_of_factory_from_string(self):
        assert Money.of("25.99").amount == Decimal("25.99")

    def test_of_factory_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of("ten")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(10.5)

    def test_addition(self):
        assert Money.of("10") + Money.of("5.50") == Money.of("15.50")

    def test_multiplication_by_int(self):
        assert Money.of("7.50") * 3 == Money.of("22.50")

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money(Decimal("10"), "TRY") + Money(Decimal("5"), "EUR")

    def test_quantize_rounds_half_up_to_cents(self):
        assert Money.of("1.005").quantize().amount == Decimal("1.01")

    @pytest.mark.parametrize("raw", ["Infinity", "-Infinity", "NaN", "sNaN"])
    def test_non_finite_amount_rejected(self, raw):
        with pytest.raises(ValidationError, match="must be finite"):
            Money.of(raw)

    def test_quantize_rejects_amount_beyond_precision(self):
        with pytest.raises(ValidationError, match="too large"):
            Money.of("1e40").quantize()

    def test_str_formatting(self):
        assert str(Money.of("15")) == "15.00 TRY"
        assert str(Money.of("9.5", "EUR")) == "9.50 EUR"


# ── Quantity ─────────────────────────────────────────────────────────────────


class TestQuantity:

    def test_valid_quantity(self):
        assert Quantity(5).value == 5

    def test_zero_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(0)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(-3)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(True)

    def test_quantity_error_names_the_value(self):
        with pytest.raises(ValidationError, match="got -3"):
            Quantity(-3)
