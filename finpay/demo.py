#!/usr/bin/env python3
"""
Demo data loader — populates the database with sample dashboard data.

!! NOT FOR PRODUCTION !!
This script creates fake users, cards, transactions and rewards. It is
intended ONLY for local demos and frontend development.

Usage:
    # Load demo data into the configured DATABASE_URL:
    python -m finpay.demo

    # Drop and recreate every table first:
    python -m finpay.demo --reset

    # Reproducible amounts:
    python -m finpay.demo --seed 42

Everything goes through FinPayContext, so the same constraints that guard
real traffic apply here.
"""

import argparse
import asyncio
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from finpay.config import settings
from finpay.context import FinPayContext, open_context
from finpay.database import Base, create_engine, create_session_factory, init_db
from finpay.logging import setup_logging
from finpay.models import (
    CreditCard,
    Reward,
    RewardType,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

USERS = [
    {
        "email": "alice.chen@example.com",
        "first_name": "Alice",
        "last_name": "Chen",
        "phone_number": "5550100001",
        "cards": [
            {"card_type": "Visa", "last_four": "4242", "credit_limit": Decimal("8000.00")},
            {"card_type": "Amex", "last_four": "0005", "credit_limit": Decimal("15000.00")},
        ],
    },
    {
        "email": "bob.martinez@example.com",
        "first_name": "Bob",
        "last_name": "Martinez",
        "phone_number": None,
        "cards": [
            {"card_type": "Mastercard", "last_four": "4444", "credit_limit": Decimal("5000.00")},
        ],
    },
    {
        "email": "carol.nguyen@example.com",
        "first_name": "Carol",
        "last_name": "Nguyen",
        "phone_number": "5550100003",
        "cards": [
            {"card_type": "Visa", "last_four": "1881", "credit_limit": Decimal("12000.00")},
        ],
    },
]

# (merchant, description, category id)
PURCHASES = [
    ("Blue Bottle Coffee", "Coffee shop", "cat-1"),
    ("Sweetgreen", "Lunch", "cat-1"),
    ("Uber", "Ride downtown", "cat-2"),
    ("Shell", "Gas station", "cat-2"),
    ("Amazon", "Online order", "cat-3"),
    ("Uniqlo", "Clothing store", "cat-3"),
    ("Netflix", "Streaming subscription", "cat-4"),
    ("AMC Theatres", "Movie tickets", "cat-4"),
    ("PG&E", "Electricity bill", "cat-5"),
    ("Comcast", "Internet bill", "cat-5"),
]

TRANSACTIONS_PER_CARD = 8

# Points per whole currency unit spent
POINTS_PER_UNIT = 1


def _amount(rng: random.Random, low_cents: int, high_cents: int) -> Decimal:
    return Decimal(rng.randint(low_cents, high_cents)).scaleb(-2)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

async def load_demo_data(
    context: FinPayContext,
    rng: random.Random | None = None,
) -> dict[str, int]:
    """
    Create the demo users with their cards, transactions and rewards.

    Card balances are written to agree with the generated purchases. Each
    completed purchase earns one point per whole unit spent, and every user
    gets a sign-up bonus not tied to any transaction.

    Args:
        context: Open access context; the caller commits.
        rng: Random source for amounts and dates (seed it for repeatable data).

    Returns:
        Number of rows created per table.
    """
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    counts = {"users": 0, "credit_cards": 0, "transactions": 0, "rewards": 0}

    for profile in USERS:
        user = await context.users.add(User(
            email=profile["email"],
            first_name=profile["first_name"],
            last_name=profile["last_name"],
            phone_number=profile["phone_number"],
        ))
        counts["users"] += 1

        await context.rewards.add(Reward(
            user_id=user.id,
            points_earned=500,
            reward_type=RewardType.BONUS.value,
            description="Welcome bonus",
            earned_date=now - timedelta(days=60),
        ))
        counts["rewards"] += 1

        for card_info in profile["cards"]:
            card = await context.credit_cards.add(CreditCard(
                user_id=user.id,
                card_number_last_four=card_info["last_four"],
                card_holder_name=f"{profile['first_name']} {profile['last_name']}",
                expiry_date=now + timedelta(days=3 * 365),
                card_type=card_info["card_type"],
                credit_limit=card_info["credit_limit"],
                available_balance=card_info["credit_limit"],
                current_balance=Decimal("0.00"),
            ))
            counts["credit_cards"] += 1

            balance = Decimal("0.00")
            for _ in range(TRANSACTIONS_PER_CARD):
                merchant, description, category_id = rng.choice(PURCHASES)
                amount = _amount(rng, 3_50, 180_00)
                status = rng.choices(
                    [TransactionStatus.COMPLETED, TransactionStatus.PENDING, TransactionStatus.FAILED],
                    weights=[85, 10, 5],
                )[0]
                txn = await context.transactions.add(Transaction(
                    card_id=card.id,
                    amount=amount,
                    description=description,
                    category_id=category_id,
                    merchant_name=merchant,
                    transaction_date=now - timedelta(days=rng.randint(0, 59)),
                    status=status.value,
                    transaction_type=TransactionType.PURCHASE.value,
                ))
                counts["transactions"] += 1

                if status is TransactionStatus.FAILED:
                    continue
                balance += amount

                if status is TransactionStatus.COMPLETED:
                    await context.rewards.add(Reward(
                        user_id=user.id,
                        transaction_id=txn.id,
                        points_earned=int(amount) * POINTS_PER_UNIT,
                        reward_type=RewardType.PURCHASE.value,
                        description=f"Points for {merchant}",
                        earned_date=txn.transaction_date,
                    ))
                    counts["rewards"] += 1

            card.current_balance = balance
            card.available_balance = card.credit_limit - balance
            await context.save()

    return counts


async def reset_database(engine) -> None:
    """Drop and recreate every table, then re-seed reference data."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_db(engine)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def run(reset: bool = False, seed: int | None = None) -> dict[str, int]:
    engine = create_engine(settings)
    try:
        if reset:
            await reset_database(engine)
        else:
            await init_db(engine)

        async with open_context(create_session_factory(engine)) as context:
            return await load_demo_data(context, random.Random(seed))
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo data loader — NOT FOR PRODUCTION",
        epilog="Creates sample users, cards, transactions and rewards for demos.",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Drop and recreate all tables before loading",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for repeatable amounts and dates",
    )
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, debug=settings.DEBUG)
    counts = asyncio.run(run(reset=args.reset, seed=args.seed))

    print("\n========================================")
    print("  DEMO DATA LOADED")
    print("========================================")
    for table, count in counts.items():
        print(f"  {table:<15s} {count}")
    print()


if __name__ == "__main__":
    main()
