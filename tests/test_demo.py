"""
Tests for the demo data loader.

These tests verify:
  - The loader creates the documented users, cards and transactions
  - Card balances agree with the generated purchases
  - Purchase rewards point at existing transactions
  - --reset makes the loader repeatable against a file database
"""

import random
from decimal import Decimal

from finpay import demo
from finpay.config import Settings
from finpay.demo import TRANSACTIONS_PER_CARD, USERS, load_demo_data
from finpay.models import TransactionStatus


class TestLoadDemoData:

    async def test_counts(self, context):
        counts = await load_demo_data(context, random.Random(7))
        await context.commit()

        expected_cards = sum(len(u["cards"]) for u in USERS)
        assert counts["users"] == len(USERS)
        assert counts["credit_cards"] == expected_cards
        assert counts["transactions"] == expected_cards * TRANSACTIONS_PER_CARD

        assert await context.users.count() == counts["users"]
        assert await context.credit_cards.count() == counts["credit_cards"]
        assert await context.transactions.count() == counts["transactions"]
        assert await context.rewards.count() == counts["rewards"]

    async def test_balances_match_purchases(self, context):
        await load_demo_data(context, random.Random(7))

        for card in await context.credit_cards.page():
            txns = await context.transactions_for_card(card.id)
            spent = sum(
                (t.amount for t in txns if t.status != TransactionStatus.FAILED.value),
                Decimal("0.00"),
            )
            assert card.current_balance == spent
            assert card.available_balance + card.current_balance == card.credit_limit

    async def test_purchase_rewards_link_to_completed_transactions(self, context):
        await load_demo_data(context, random.Random(7))

        for user in await context.users.page():
            rewards = await context.rewards_for_user(user.id)
            bonuses = [r for r in rewards if r.transaction_id is None]
            assert len(bonuses) == 1

            for reward in rewards:
                if reward.transaction_id is None:
                    continue
                txn = await context.transactions.require(reward.transaction_id)
                assert txn.status == TransactionStatus.COMPLETED.value
                assert reward.points_earned == int(txn.amount)

    async def test_transactions_use_seed_categories(self, context):
        await load_demo_data(context, random.Random(7))

        category_ids = {c.id for c in await context.categories.page()}
        for txn in await context.transactions.page(limit=1000):
            assert txn.category_id in category_ids


class TestRun:

    async def test_reset_makes_run_repeatable(self, tmp_path, monkeypatch):
        url = f"sqlite+aiosqlite:///{tmp_path / 'demo.db'}"
        monkeypatch.setattr(demo, "settings", Settings(DATABASE_URL=url, _env_file=None))

        first = await demo.run(seed=3)
        second = await demo.run(reset=True, seed=3)

        assert first == second
        assert first["users"] == len(USERS)
