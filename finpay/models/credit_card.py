"""
CreditCard model — a card owned by a User.

Only the last four digits of the card number are stored; the full number
never reaches this layer.

Balances:
  credit_limit, available_balance and current_balance are stored values in
  decimal(18,2) (see finpay.types.Money). Nothing here derives one from the
  others; they are written as supplied by the card issuer feed.

Delete rules:
  - credit_cards.user_id -> users.id        ON DELETE CASCADE
  - transactions.card_id -> credit_cards.id ON DELETE CASCADE (declared on Transaction)
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from finpay.database import Base
from finpay.types import Money, UTCDateTime


class CreditCard(Base):
    __tablename__ = "credit_cards"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Owner — deleting the user deletes the card
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Last four digits in plaintext for display ("ending in 4242")
    card_number_last_four: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
    )

    card_holder_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    expiry_date: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
    )

    # Network/product label, e.g. "Visa", "Mastercard"
    card_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    credit_limit: Mapped[Decimal] = mapped_column(
        Money,
        nullable=False,
        default=Decimal("0.00"),
    )
    available_balance: Mapped[Decimal] = mapped_column(
        Money,
        nullable=False,
        default=Decimal("0.00"),
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Money,
        nullable=False,
        default=Decimal("0.00"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CreditCard {self.id} ****{self.card_number_last_four}>"
