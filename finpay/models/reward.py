"""
Reward model — points granted to a User, optionally for a Transaction.

A reward belongs to its user (ON DELETE CASCADE) but only *remembers* the
transaction it came from: rewards.transaction_id is ON DELETE SET NULL, so a
refunded-and-deleted purchase leaves the points in place, decoupled from
their origin.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finpay.database import Base
from finpay.types import UTCDateTime


class RewardType(str, enum.Enum):
    """Why the points were granted."""
    PURCHASE = "Purchase"
    BONUS = "Bonus"
    REFERRAL = "Referral"


class Reward(Base):
    __tablename__ = "rewards"

    __table_args__ = (
        CheckConstraint(
            "reward_type IN ({})".format(
                ", ".join(f"'{member.value}'" for member in RewardType)
            ),
            name="reward_type",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Originating transaction; nulled when that transaction is deleted
    transaction_id: Mapped[str | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    points_earned: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    points_redeemed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    reward_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=RewardType.PURCHASE.value,
        info={"choices": RewardType},
    )

    description: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
    )

    earned_date: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    redeemed_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Reward {self.id} +{self.points_earned}/-{self.points_redeemed}>"
