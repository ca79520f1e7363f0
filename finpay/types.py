"""
Column types that round-trip exactly on every engine.

Money — fixed-point decimal(18,2).

Monetary values are always Python Decimals with exactly two fractional digits.
Floats are never accepted: 0.1 + 0.2 != 0.3 in IEEE 754, and a balance that
drifts by a fraction of a cent is a balance that cannot be reconciled.

Storage:
  - Engines with a native fixed-point type (PostgreSQL, SQL Server, MySQL)
    get NUMERIC(18, 2) and receive the Decimal as-is.
  - SQLite has no fixed-point type (NUMERIC columns are coerced to REAL), so
    there the value is stored as integer cents in a BIGINT. 18 digits of
    cents fit comfortably in SQLite's signed 64-bit INTEGER.

Validation of precision and scale happens before flush in
finpay.constraints, where the offending field name is known.

UTCDateTime — timezone-aware timestamps.

Every timestamp is stored as UTC and comes back as an aware datetime in UTC.
SQLite's DATETIME discards tzinfo, so values are normalized to UTC before
they are written there and UTC is reattached on the way out.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import BigInteger, DateTime, Numeric
from sqlalchemy.types import TypeDecorator

MONEY_PRECISION = 18
MONEY_SCALE = 2

CENT = Decimal(1).scaleb(-MONEY_SCALE)

# Largest magnitude representable in NUMERIC(18, 2)
MONEY_LIMIT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)


def to_money(value) -> Decimal:
    """
    Coerce a value to a two-place Decimal, rejecting anything lossy.

    Accepts Decimal, int, or a numeric string. Raises ValueError for floats,
    non-finite values, more than two fractional digits, or magnitudes that
    don't fit in NUMERIC(18, 2). Never rounds.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{type(value).__name__} is not a valid monetary amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"{value!r} is not a valid monetary amount")

    if not amount.is_finite():
        raise ValueError(f"{value!r} is not a finite amount")
    if abs(amount) >= MONEY_LIMIT:
        raise ValueError(f"{value!r} exceeds decimal({MONEY_PRECISION},{MONEY_SCALE})")
    if amount != amount.quantize(CENT):
        raise ValueError(f"{value!r} has more than {MONEY_SCALE} fractional digits")
    return amount.quantize(CENT)


class Money(TypeDecorator):
    """NUMERIC(18, 2) that round-trips exactly, including on SQLite."""

    impl = Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(
            Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = to_money(value)
        if dialect.name == "sqlite":
            return int(amount.scaleb(MONEY_SCALE))
        return amount

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(int(value)).scaleb(-MONEY_SCALE)
        return Decimal(value).quantize(CENT)


class UTCDateTime(TypeDecorator):
    """DateTime(timezone=True) that always returns aware UTC values.

    Naive datetimes are taken to already be in UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
