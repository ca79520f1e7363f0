"""
Transaction model — one card transaction as reported by the issuer.

Amounts are stored as supplied (decimal(18,2), sign as reported); this layer
does not derive balances or validate business rules beyond field constraints.

Key fields:
  - card_id: The card charged. ON DELETE CASCADE — deleting the card deletes
    its transactions.
  - category_id: Optional classification. ON DELETE RESTRICT — a category
    cannot be deleted while any transaction still references it.
  - status: "Completed", "Pending" or "Failed"
  - transaction_type: "Purchase", "Refund" or "Payment"

Both status and transaction_type are closed sets. They are stored as plain
strings, checked in Python before flush (column info "choices") and again by
a CHECK constraint in the database.

Rewards that point at a transaction survive its deletion with their
transaction_id set to NULL (declared on Reward).
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finpay.database import Base
from finpay.types import Money, UTCDateTime


class TransactionStatus(str, enum.Enum):
    """Settlement state of a transaction."""
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"


class TransactionType(str, enum.Enum):
    """Direction/kind of a card transaction."""
    PURCHASE = "Purchase"
    REFUND = "Refund"
    PAYMENT = "Payment"


def _in_clause(column: str, choices: type[enum.Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in choices)
    return f"{column} IN ({values})"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(_in_clause("status", TransactionStatus), name="status"),
        CheckConstraint(
            _in_clause("transaction_type", TransactionType), name="transaction_type"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    card_id: Mapped[str] = mapped_column(
        ForeignKey("credit_cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Money,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # Blocked from deletion while referenced (RESTRICT)
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    merchant_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    # When the purchase happened (as opposed to when we recorded it).
    # Indexed for date-range queries.
    transaction_date: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.COMPLETED.value,
        info={"choices": TransactionStatus},
    )

    transaction_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=TransactionType.PURCHASE.value,
        info={"choices": TransactionType},
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.amount} {self.status}>"
