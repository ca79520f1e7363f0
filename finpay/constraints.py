"""
Field-level constraint enforcement before persistence.

Column definitions are the single source of truth for field constraints:

  - String(n)             — max length n; longer values are rejected, never truncated
  - nullable=False        — required (unless the column has a default);
                            required strings must also be non-blank
  - Money                 — decimal(18,2), no floats, no extra fractional digits
  - info={"choices": E}   — value must be one of the str-enum E's values
  - info={"pattern": re}  — value must fully match the compiled regex
  - primary key           — immutable once the row is persisted

SQLite ignores VARCHAR lengths entirely and other engines disagree on whether
to truncate or fail, so the checks run in Python from a ``before_flush`` hook
on FinPaySession. A violation raises ConstraintViolationError naming the
entity and field, and no SQL is emitted for the flush.
"""

import enum
import logging

from sqlalchemy import String, event, inspect
from sqlalchemy.orm import Session

from finpay.exceptions import ConstraintViolationError
from finpay.types import Money, to_money

logger = logging.getLogger(__name__)


class FinPaySession(Session):
    """
    Sync session class used underneath every AsyncSession in this project.

    Exists so the constraint hook is attached to our sessions only, rather
    than to every SQLAlchemy Session in the process.
    """


def _is_required(column) -> bool:
    return (
        not column.nullable
        and not column.primary_key
        and column.default is None
        and column.server_default is None
    )


def validate_entity(entity, persistent: bool = False) -> None:
    """
    Check every loaded column value of an entity against its declaration.

    Args:
        entity: A mapped instance (new or modified).
        persistent: True for rows that already exist; enables the
            primary-key immutability check and skips attributes that
            aren't loaded.

    Raises:
        ConstraintViolationError: On the first offending field.
    """
    state = inspect(entity)
    mapper = state.mapper
    table = mapper.local_table.name

    for prop in mapper.column_attrs:
        column = prop.columns[0]
        key = prop.key

        if persistent and key not in state.dict:
            continue
        value = state.dict.get(key)

        if persistent and column.primary_key:
            history = state.attrs[key].history
            if history.added and history.deleted:
                raise ConstraintViolationError(
                    table, key, f"{table}.{key} is immutable once assigned"
                )

        if value is None:
            if _is_required(column):
                raise ConstraintViolationError(table, key, f"{table}.{key} is required")
            continue

        choices = column.info.get("choices")
        if choices is not None:
            allowed = [member.value for member in choices]
            if value not in allowed:
                raise ConstraintViolationError(
                    table, key,
                    f"{table}.{key} must be one of {', '.join(allowed)}; got {value!r}",
                )
            if isinstance(value, enum.Enum):
                # Store the plain string, not the enum member
                setattr(entity, key, value.value)
                value = value.value

        if isinstance(column.type, Money):
            try:
                to_money(value)
            except ValueError as exc:
                raise ConstraintViolationError(table, key, f"{table}.{key}: {exc}")
            continue

        if isinstance(column.type, String):
            if not isinstance(value, str):
                raise ConstraintViolationError(
                    table, key, f"{table}.{key} must be a string"
                )
            if _is_required(column) and not value.strip():
                raise ConstraintViolationError(table, key, f"{table}.{key} is required")
            length = column.type.length
            if length is not None and len(value) > length:
                raise ConstraintViolationError(
                    table, key,
                    f"{table}.{key} exceeds {length} characters ({len(value)})",
                )

        pattern = column.info.get("pattern")
        if pattern is not None and not pattern.fullmatch(value):
            raise ConstraintViolationError(
                table, key, f"{table}.{key} {value!r} does not match {pattern.pattern}"
            )


@event.listens_for(FinPaySession, "before_flush")
def _validate_before_flush(session, flush_context, instances):
    for entity in session.new:
        validate_entity(entity)
    for entity in session.dirty:
        if session.is_modified(entity):
            validate_entity(entity, persistent=True)
