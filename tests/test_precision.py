"""
Tests for decimal(18,2) monetary precision — no floating point anywhere.

Floating point representations of money cause rounding errors (e.g.,
0.1 + 0.2 = 0.30000000000000004). Every monetary column is a Money column:
Decimal in, Decimal out, exactly two fractional digits.

Tests verify:
  - Boundary values round-trip exactly through storage
  - Values outside decimal(18,2) are rejected, not rounded
  - Floats are refused outright
"""

from decimal import Decimal

import pytest

from finpay.context import FinPayContext
from finpay.exceptions import ConstraintViolationError
from finpay.models import Transaction
from finpay.types import to_money


async def _store_and_reload(context, session_factory, card, field, value):
    setattr(card, field, value)
    await context.commit()
    async with session_factory() as session:
        fresh = await FinPayContext(session).credit_cards.require(card.id)
    return getattr(fresh, field)


class TestMoneyRoundTrip:

    @pytest.mark.parametrize("value", [
        "12345678901234.56",
        "9999999999999999.99",
        "-9999999999999999.99",
        "0.01",
        "0.00",
    ])
    async def test_round_trips_exactly(self, context, session_factory, card, value):
        stored = await _store_and_reload(
            context, session_factory, card, "credit_limit", Decimal(value)
        )

        assert stored == Decimal(value)
        assert isinstance(stored, Decimal)
        assert str(stored) == value

    async def test_whole_numbers_come_back_with_two_places(self, context, session_factory, card):
        stored = await _store_and_reload(context, session_factory, card, "current_balance", 100)
        assert str(stored) == "100.00"

    async def test_transaction_amount_round_trips(self, context, session_factory, transaction):
        await context.commit()
        async with session_factory() as session:
            fresh = await FinPayContext(session).transactions.require(transaction.id)
        assert fresh.amount == Decimal("42.50")
        assert str(fresh.amount) == "42.50"

    async def test_no_drift_across_many_small_amounts(self, context, card):
        """Summing stored cents must be exact; 0.10 * 100 is exactly 10.00."""
        for _ in range(100):
            await context.transactions.add(Transaction(
                card_id=card.id, amount=Decimal("0.10"), description="Parking meter",
            ))

        txns = await context.transactions_for_card(card.id)
        assert sum(t.amount for t in txns) == Decimal("10.00")


class TestMoneyRejection:

    async def test_value_beyond_precision_rejected(self, context, card):
        card.credit_limit = Decimal("10000000000000000.00")
        with pytest.raises(ConstraintViolationError) as exc_info:
            await context.save()
        assert exc_info.value.field == "credit_limit"
        assert card.credit_limit == Decimal("5000.00")
        await context.rollback()

    async def test_extra_fractional_digit_rejected(self, context, card):
        card.available_balance = Decimal("12.345")
        with pytest.raises(ConstraintViolationError) as exc_info:
            await context.save()
        assert exc_info.value.field == "available_balance"
        await context.rollback()

    async def test_float_rejected(self, context, card):
        card.current_balance = 10.5
        with pytest.raises(ConstraintViolationError) as exc_info:
            await context.save()
        assert exc_info.value.field == "current_balance"
        await context.rollback()


class TestToMoney:

    def test_accepts_strings_and_ints(self):
        assert to_money("19.9") == Decimal("19.90")
        assert to_money(7) == Decimal("7.00")

    def test_trailing_zeros_are_not_extra_precision(self):
        assert to_money(Decimal("1.500")) == Decimal("1.50")

    @pytest.mark.parametrize("bad", [0.1, "NaN", "Infinity", "abc", True, Decimal("1E+16")])
    def test_rejects(self, bad):
        with pytest.raises(ValueError):
            to_money(bad)
