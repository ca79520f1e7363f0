"""
User model — the dashboard's account owner.

A User owns credit cards and accumulates rewards. Deleting a User removes
both (ON DELETE CASCADE on credit_cards.user_id and rewards.user_id), and the
card cascade carries on to the card's transactions.

Email is the natural identifier: it is UNIQUE at the storage layer, so a
duplicate surfaces as UniqueConstraintError on flush even when two requests
race each other.

Navigation:
  No relationship collections are mapped. Owned rows are reached by query
  (FinPayContext.cards_for_user / rewards_for_user), which keeps object graphs
  acyclic and every database round trip explicit.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from finpay.database import Base
from finpay.types import UTCDateTime


class User(Base):
    __tablename__ = "users"

    # Opaque string id, assigned at creation and never changed
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Login identifier — unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    last_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    phone_number: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    # Audit timestamps (updated_at refreshes on every ORM update)
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
        return f"<User {self.id} {self.email}>"
