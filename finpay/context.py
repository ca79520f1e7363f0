"""
Access context — the request-scoped handle over the five entity sets.

A FinPayContext wraps one AsyncSession and exposes a typed EntitySet per
entity:

    async with open_context(session_factory) as ctx:
        user = await ctx.users.add(User(email="a@example.com", ...))
        card = await ctx.credit_cards.add(CreditCard(user_id=user.id, ...))
        cards = await ctx.cards_for_user(user.id)

Lifecycle:
  One context per inbound operation. open_context() commits when the block
  exits cleanly and rolls back on any exception, so no state is shared
  between concurrent callers except through the database itself.

Errors:
  - Field constraint breaches raise ConstraintViolationError before any SQL
    is sent (see finpay.constraints).
  - IntegrityErrors raised by the engine are rolled back to a savepoint and
    translated into UniqueConstraintError / ReferentialIntegrityError /
    ConstraintViolationError. Only the failed save is undone; earlier saved
    work in this context survives until commit or rollback.
  - Anything else (connection loss, timeouts) propagates unchanged.

Relationships:
  Entity cross-references are query methods (cards_for_user,
  transactions_for_card, ...) rather than lazy-loaded collections. Reads
  always go to the database with populate_existing, so the effect of
  ON DELETE CASCADE / SET NULL performed by the engine is visible
  immediately, even for objects already in the identity map.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finpay.database import Base
from finpay.exceptions import (
    ConstraintViolationError,
    EntityNotFoundError,
    translate_integrity_error,
)
from finpay.models import Category, CreditCard, Reward, Transaction, User

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)


class EntitySet(Generic[T]):
    """Typed collection over one entity table."""

    def __init__(self, context: "FinPayContext", model: type[T]):
        self._context = context
        self.model = model
        self.name = model.__tablename__

    @property
    def session(self) -> AsyncSession:
        return self._context.session

    def _select(self):
        return select(self.model).execution_options(populate_existing=True)

    async def _execute(self, statement):
        # Flush first so pending-change errors are translated, not raised raw
        # from autoflush
        await self._context.save()
        return await self.session.execute(statement)

    async def get(self, entity_id: str) -> T | None:
        """Fetch one row by id, or None if it doesn't exist."""
        result = await self._execute(
            self._select().where(self.model.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def require(self, entity_id: str) -> T:
        """Fetch one row by id, raising EntityNotFoundError if absent."""
        entity = await self.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.name, entity_id)
        return entity

    async def page(self, offset: int = 0, limit: int = 100) -> list[T]:
        """Page through all rows in primary-key order."""
        result = await self._execute(
            self._select().order_by(self.model.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def find_by(self, **criteria: Any) -> list[T]:
        """All rows whose columns equal the given values, e.g. find_by(user_id=...)."""
        result = await self._execute(
            self._select().filter_by(**criteria).order_by(self.model.id)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self._execute(
            select(func.count()).select_from(self.model)
        )
        return result.scalar_one()

    async def add(self, entity: T) -> T:
        """
        Persist a new entity and return it with defaults populated.

        Raises:
            ConstraintViolationError: Field constraint breach (the entity is discarded).
            UniqueConstraintError: Duplicate value in a unique column.
            ReferentialIntegrityError: A foreign key points at a missing row.
        """
        if not isinstance(entity, self.model):
            raise TypeError(f"Expected {self.model.__name__}, got {type(entity).__name__}")

        self.session.add(entity)
        await self._context.save()
        return entity

    async def delete(self, entity_id: str) -> None:
        """
        Delete a row by id; dependents follow their ON DELETE rules.

        Raises:
            EntityNotFoundError: If the row doesn't exist.
            ReferentialIntegrityError: If a RESTRICT rule still protects it.
        """
        entity = await self.require(entity_id)
        await self.session.delete(entity)
        await self._context.save()
        logger.info("Deleted %s %s", self.name, entity_id)


class FinPayContext:
    """
    Request-scoped access to users, cards, transactions, categories and rewards.

    Args:
        session: The AsyncSession this context operates in. The context does
            not close it; open_context() does.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users: EntitySet[User] = EntitySet(self, User)
        self.credit_cards: EntitySet[CreditCard] = EntitySet(self, CreditCard)
        self.transactions: EntitySet[Transaction] = EntitySet(self, Transaction)
        self.categories: EntitySet[Category] = EntitySet(self, Category)
        self.rewards: EntitySet[Reward] = EntitySet(self, Reward)

    # -----------------------------------------------------------------------
    # Back-reference queries (one per foreign-key edge)
    # -----------------------------------------------------------------------

    async def cards_for_user(self, user_id: str) -> list[CreditCard]:
        return await self.credit_cards.find_by(user_id=user_id)

    async def rewards_for_user(self, user_id: str) -> list[Reward]:
        return await self.rewards.find_by(user_id=user_id)

    async def transactions_for_card(self, card_id: str) -> list[Transaction]:
        return await self.transactions.find_by(card_id=card_id)

    async def transactions_in_category(self, category_id: str) -> list[Transaction]:
        return await self.transactions.find_by(category_id=category_id)

    async def rewards_for_transaction(self, transaction_id: str) -> list[Reward]:
        return await self.rewards.find_by(transaction_id=transaction_id)

    # -----------------------------------------------------------------------
    # Unit of work
    # -----------------------------------------------------------------------

    async def save(self) -> None:
        """
        Flush pending changes, translating engine integrity errors.

        The flush runs inside a SAVEPOINT. If it fails, only the changes
        made since the previous save are undone: rejected new entities are
        discarded, rejected deletes are reverted and rejected updates are
        reloaded from the database. Work saved earlier in the same
        transaction is kept, and entities the caller holds stay readable.
        """
        session = self.session
        if not (session.new or session.dirty or session.deleted):
            return
        touched = list(session.dirty)
        try:
            async with session.begin_nested():
                await session.flush()
        except IntegrityError as exc:
            await self._reload(touched)
            error = translate_integrity_error(exc, Base.metadata.tables.keys())
            logger.info("Integrity violation rolled back (%s)", type(error).__name__)
            raise error from exc
        except ConstraintViolationError:
            await self._reload(touched)
            raise

    async def _reload(self, entities: list[Any]) -> None:
        # Rolling back to the savepoint expired the updated entities
        for entity in entities:
            if inspect(entity).expired_attributes:
                await self.session.refresh(entity)

    async def commit(self) -> None:
        await self.save()
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


@asynccontextmanager
async def open_context(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[FinPayContext]:
    """
    Open a FinPayContext for one operation.

    Commits on success and rolls back on any exception, then closes the
    session.
    """
    async with session_factory() as session:
        context = FinPayContext(session)
        try:
            yield context
            await context.commit()
        except Exception:
            await session.rollback()
            raise
