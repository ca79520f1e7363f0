"""
Reference data — the five built-in transaction categories.

Seeding uses fixed ids (cat-1 .. cat-5) so it can run on every start:

  - id missing            -> row inserted
  - id present, identical -> nothing happens
  - id present, different -> SeedConflictError (fatal at startup)

A diverging row means someone edited reference data by hand or two versions
of the seed disagree. Silently overwriting would hide that, so startup stops
instead.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpay.exceptions import SeedConflictError
from finpay.models.category import Category

logger = logging.getLogger(__name__)

# Fields compared when a seed id already exists
SEED_FIELDS = ("name", "description", "icon_url", "color")

CATEGORY_SEED: tuple[dict[str, str], ...] = (
    {
        "id": "cat-1",
        "name": "Food & Dining",
        "description": "Restaurants, cafes, and food delivery",
        "icon_url": "🍽️",
        "color": "#FF6B6B",
    },
    {
        "id": "cat-2",
        "name": "Transportation",
        "description": "Gas, public transport, rideshares",
        "icon_url": "🚗",
        "color": "#4ECDC4",
    },
    {
        "id": "cat-3",
        "name": "Shopping",
        "description": "Retail, online shopping, clothing",
        "icon_url": "🛍️",
        "color": "#45B7D1",
    },
    {
        "id": "cat-4",
        "name": "Entertainment",
        "description": "Movies, games, subscriptions",
        "icon_url": "🎬",
        "color": "#96CEB4",
    },
    {
        "id": "cat-5",
        "name": "Bills & Utilities",
        "description": "Electricity, water, internet, phone",
        "icon_url": "📄",
        "color": "#FFEAA7",
    },
)


async def seed_categories(session: AsyncSession) -> int:
    """
    Ensure every seed category exists with its documented content.

    Does not commit; the caller owns the transaction.

    Args:
        session: Database session.

    Returns:
        Number of rows inserted.

    Raises:
        SeedConflictError: If a seed id is already taken by different content.
    """
    seed_ids = [row["id"] for row in CATEGORY_SEED]
    result = await session.execute(select(Category).where(Category.id.in_(seed_ids)))
    existing = {category.id: category for category in result.scalars()}

    inserted = 0
    for row in CATEGORY_SEED:
        current = existing.get(row["id"])
        if current is None:
            session.add(Category(**row))
            inserted += 1
            continue

        differences = {
            field: (getattr(current, field), row[field])
            for field in SEED_FIELDS
            if getattr(current, field) != row[field]
        }
        if differences:
            raise SeedConflictError(row["id"], differences)

    await session.flush()
    if inserted:
        logger.info("Seeded %d of %d categories", inserted, len(CATEGORY_SEED))
    else:
        logger.debug("Category seed already present")
    return inserted
