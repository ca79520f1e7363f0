"""
Category model — reference data for classifying transactions.

Five categories (cat-1 .. cat-5) are seeded at initialization by
finpay.seed; applications may add more, so nothing should assume exactly
five rows in a long-lived deployment.

A category that is still referenced by a transaction cannot be deleted
(transactions.category_id is ON DELETE RESTRICT). Deactivate it with
is_active=False instead.
"""

import re
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from finpay.database import Base
from finpay.types import UTCDateTime

HEX_COLOR = re.compile(r"#(?:[0-9A-Fa-f]{3}){1,2}")


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
    )

    # Icon URL or a single emoji glyph (the seeded rows use glyphs)
    icon_url: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    # Hex color code, "#RRGGBB" or "#RGB"
    color: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        default="#000000",
        info={"pattern": HEX_COLOR},
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

    def __repr__(self) -> str:
        return f"<Category {self.id} {self.name}>"
