"""
Tests for money helpers
"""

from decimal import Decimal

from tablecart.services.money import percent, round_money, to_decimal, to_json_number


class TestMoney:
    """Tests for Decimal helpers."""

    def test_to_decimal(self):
        """Floats go through str to avoid binary noise."""
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal(True) == Decimal("0")

    def test_round_money(self):
        """Half-up rounding to cents."""
        assert round_money("2.345") == Decimal("2.35")
        assert round_money(10) == Decimal("10.00")

    def test_percent(self):
        assert percent(200, 15) == Decimal("30")

    def test_to_json_number(self):
        """Integral amounts stay ints."""
        assert to_json_number(Decimal("100.00")) == 100
        assert isinstance(to_json_number(Decimal("100.00")), int)
        assert to_json_number(Decimal("99.5")) == 99.5
