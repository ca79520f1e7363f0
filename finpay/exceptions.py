"""
Custom exception classes and FastAPI exception handlers.

The data layer raises these instead of leaking raw driver errors, so callers
can tell a duplicate email apart from a blocked delete without parsing SQL
messages themselves. The handler layer translates them into HTTP responses.

Exception hierarchy:
    FinPayError (base)
    ├── ConstraintViolationError     — required / max-length / precision / choice breach
    │   └── UniqueConstraintError    — duplicate value in a unique column
    ├── ReferentialIntegrityError    — missing FK target, or delete blocked by RESTRICT
    ├── EntityNotFoundError          — requested row doesn't exist
    └── ConfigurationError           — fatal at startup (missing DATABASE_URL, ...)
        └── SeedConflictError        — seed id exists with different content

Storage failures that are not integrity violations (connection loss, timeouts)
are not translated: they propagate unchanged and the caller owns retry policy.
"""

import logging
import re
from collections.abc import Iterable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class FinPayError(Exception):
    """Base exception for all FinPay domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ConstraintViolationError(FinPayError):
    """
    Raised when a field breaks its declared constraint.

    Attributes:
        entity: Table name of the offending entity (e.g. "users").
        field: Column name of the offending field (e.g. "email").
    """

    def __init__(self, entity: str, field: str, detail: str | None = None):
        self.entity = entity
        self.field = field
        super().__init__(detail or f"Invalid value for {entity}.{field}")


class UniqueConstraintError(ConstraintViolationError):
    """Raised when a value collides with an existing row in a unique column."""

    def __init__(self, entity: str, field: str, value: Any = None):
        self.value = value
        if value is not None:
            detail = f"{entity}.{field} {value!r} already exists"
        else:
            detail = f"{entity}.{field} must be unique"
        super().__init__(entity, field, detail)


class ReferentialIntegrityError(FinPayError):
    """
    Raised when a foreign key reference is violated.

    Covers both directions: inserting a row that points at a missing parent,
    and deleting a parent that a RESTRICT rule still protects.
    """


class EntityNotFoundError(FinPayError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConfigurationError(FinPayError):
    """Raised when configuration is invalid or missing. Fatal at startup."""


class SeedConflictError(ConfigurationError):
    """
    Raised when a seed row already exists with divergent content.

    Attributes:
        entity_id: The seed id that collided (e.g. "cat-2").
        differences: Field name -> (stored value, seed value).
    """

    def __init__(self, entity_id: str, differences: dict[str, tuple[Any, Any]]):
        self.entity_id = entity_id
        self.differences = differences
        fields = ", ".join(sorted(differences))
        super().__init__(
            f"Seed row {entity_id} exists with different content ({fields})"
        )


# ---------------------------------------------------------------------------
# IntegrityError translation
# ---------------------------------------------------------------------------

# SQLite reports violations as plain text
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (\w+)\.(\w+)")
_SQLITE_NOT_NULL = re.compile(r"NOT NULL constraint failed: (\w+)\.(\w+)")
_SQLITE_CHECK = re.compile(r"CHECK constraint failed: (\w+)")

# PostgreSQL SQLSTATE codes (class 23 — integrity constraint violation)
_PG_NOT_NULL = "23502"
_PG_FOREIGN_KEY = "23503"
_PG_UNIQUE = "23505"
_PG_CHECK = "23514"
_PG_KEY_DETAIL = re.compile(r"Key \((\w+)\)=\((.*?)\)")
_PG_TABLE = re.compile(r'(?:relation|table) "(\w+)"')
_PG_CONSTRAINT = re.compile(r'constraint "(\w+)"')


def _split_constraint_name(constraint_name: str, table_names: Iterable[str]) -> tuple[str, str]:
    """Split a ``<ck|ix|uq>_<table>_<field>`` constraint name into (table, field)."""
    _, _, rest = constraint_name.partition("_")
    # Longest first so "credit_cards" wins over a hypothetical "credit"
    for table in sorted(table_names, key=len, reverse=True):
        prefix = f"{table}_"
        if rest.startswith(prefix):
            return table, rest[len(prefix):]
    return "unknown", constraint_name


def translate_integrity_error(
    exc: IntegrityError,
    table_names: Iterable[str] = (),
) -> FinPayError:
    """
    Map a SQLAlchemy IntegrityError onto the FinPay error taxonomy.

    Understands SQLite's message text and PostgreSQL SQLSTATE codes. Anything
    unrecognized becomes a plain FinPayError so callers still get a domain
    error instead of a driver exception.

    Args:
        exc: The IntegrityError raised during flush/commit.
        table_names: Known table names, used to split ck_/ix_/uq_ constraint names.

    Returns:
        The translated exception (not raised; the caller raises it ``from exc``).
    """
    orig = exc.orig
    message = str(orig) if orig is not None else str(exc)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)

    if match := _SQLITE_UNIQUE.search(message):
        return UniqueConstraintError(match.group(1), match.group(2))
    if match := _SQLITE_NOT_NULL.search(message):
        return ConstraintViolationError(
            match.group(1), match.group(2), f"{match.group(1)}.{match.group(2)} is required"
        )
    if match := _SQLITE_CHECK.search(message):
        return ConstraintViolationError(*_split_constraint_name(match.group(1), table_names))
    if "FOREIGN KEY constraint failed" in message:
        return ReferentialIntegrityError("Foreign key constraint failed")

    if sqlstate is not None:
        key = _PG_KEY_DETAIL.search(message)
        constraint = _PG_CONSTRAINT.search(message)
        table = _PG_TABLE.search(message)
        if table:
            entity = table.group(1)
        elif constraint:
            entity = _split_constraint_name(constraint.group(1), table_names)[0]
        else:
            entity = "unknown"
        if sqlstate == _PG_UNIQUE:
            if key:
                return UniqueConstraintError(entity, key.group(1), key.group(2))
            return UniqueConstraintError(entity, "unknown")
        if sqlstate == _PG_FOREIGN_KEY:
            return ReferentialIntegrityError("Foreign key constraint failed")
        if sqlstate == _PG_NOT_NULL:
            column = re.search(r'column "(\w+)"', message)
            return ConstraintViolationError(entity, column.group(1) if column else "unknown")
        if sqlstate == _PG_CHECK:
            if constraint:
                return ConstraintViolationError(
                    *_split_constraint_name(constraint.group(1), table_names)
                )
            return ConstraintViolationError(entity, "unknown")

    logger.warning("Unrecognized integrity error: %s", type(orig).__name__)
    return FinPayError("Database integrity error")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and a
    consistent JSON body: {"detail": ..., "error_type": ...}.
    """

    @app.exception_handler(UniqueConstraintError)
    async def unique_constraint_handler(
        request: Request, exc: UniqueConstraintError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict — the value is already taken
            content={
                "detail": exc.detail,
                "error_type": "unique_violation",
                "field": exc.field,
            },
        )

    @app.exception_handler(ConstraintViolationError)
    async def constraint_violation_handler(
        request: Request, exc: ConstraintViolationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": "constraint_violation",
                "field": exc.field,
            },
        )

    @app.exception_handler(ReferentialIntegrityError)
    async def referential_integrity_handler(
        request: Request, exc: ReferentialIntegrityError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "referential_integrity"},
        )

    @app.exception_handler(EntityNotFoundError)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "not_found"},
        )
