"""
Tests for IntegrityError translation.

The translation layer turns driver-specific integrity errors into the
FinPay taxonomy. SQLite messages are exercised both synthetically and
against the real engine; PostgreSQL errors are simulated by their SQLSTATE.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from finpay.database import Base
from finpay.exceptions import (
    ConstraintViolationError,
    FinPayError,
    ReferentialIntegrityError,
    UniqueConstraintError,
    translate_integrity_error,
)

TABLES = ["users", "credit_cards", "transactions", "categories", "rewards"]


def integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, orig)


class FakePostgresError(Exception):
    def __init__(self, message: str, sqlstate: str):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestSqliteMessages:

    def test_unique(self):
        error = translate_integrity_error(
            integrity_error(Exception("UNIQUE constraint failed: users.email"))
        )
        assert isinstance(error, UniqueConstraintError)
        assert (error.entity, error.field) == ("users", "email")

    def test_foreign_key(self):
        error = translate_integrity_error(
            integrity_error(Exception("FOREIGN KEY constraint failed"))
        )
        assert type(error) is ReferentialIntegrityError

    def test_not_null(self):
        error = translate_integrity_error(
            integrity_error(Exception("NOT NULL constraint failed: transactions.description"))
        )
        assert type(error) is ConstraintViolationError
        assert (error.entity, error.field) == ("transactions", "description")

    def test_check_constraint_split_by_table(self):
        error = translate_integrity_error(
            integrity_error(Exception("CHECK constraint failed: ck_credit_cards_card_type")),
            TABLES,
        )
        assert (error.entity, error.field) == ("credit_cards", "card_type")

    def test_unrecognized_becomes_base_error(self):
        error = translate_integrity_error(integrity_error(Exception("something odd")))
        assert type(error) is FinPayError


class TestPostgresSqlstate:

    def test_unique(self):
        error = translate_integrity_error(integrity_error(FakePostgresError(
            'duplicate key value violates unique constraint "ix_users_email"\n'
            "DETAIL:  Key (email)=(alice@example.com) already exists.",
            "23505",
        )))
        assert isinstance(error, UniqueConstraintError)
        assert error.field == "email"
        assert error.value == "alice@example.com"

    def test_unique_index_names_its_table(self):
        error = translate_integrity_error(
            integrity_error(FakePostgresError(
                'duplicate key value violates unique constraint "ix_users_email"\n'
                "DETAIL:  Key (email)=(alice@example.com) already exists.",
                "23505",
            )),
            TABLES,
        )
        assert (error.entity, error.field) == ("users", "email")

    def test_unique_constraint_on_underscored_table(self):
        error = translate_integrity_error(
            integrity_error(FakePostgresError(
                'duplicate key value violates unique constraint "uq_credit_cards_card_number_last_four"',
                "23505",
            )),
            TABLES,
        )
        assert error.entity == "credit_cards"

    def test_foreign_key(self):
        error = translate_integrity_error(integrity_error(FakePostgresError(
            'insert or update on table "transactions" violates foreign key constraint',
            "23503",
        )))
        assert type(error) is ReferentialIntegrityError

    def test_check(self):
        error = translate_integrity_error(
            integrity_error(FakePostgresError(
                'new row for relation "rewards" violates check constraint '
                '"ck_rewards_reward_type"',
                "23514",
            )),
            TABLES,
        )
        assert (error.entity, error.field) == ("rewards", "reward_type")


class TestDatabaseCheckConstraints:
    """Raw SQL bypasses the Python checks; the CHECK constraint still holds."""

    async def test_status_check_enforced_by_engine(self, context, transaction):
        await context.commit()

        with pytest.raises(IntegrityError) as exc_info:
            await context.session.execute(
                text("UPDATE transactions SET status = 'Bogus' WHERE id = :id"),
                {"id": transaction.id},
            )
        await context.rollback()

        error = translate_integrity_error(exc_info.value, Base.metadata.tables.keys())
        assert isinstance(error, ConstraintViolationError)
        assert (error.entity, error.field) == ("transactions", "status")
