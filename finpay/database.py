"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Base: Declarative base class that all ORM models inherit from
  - create_engine(): Builds the async engine from Settings (fatal if unconfigured)
  - create_session_factory(): Factory for constraint-checking async sessions
  - init_db(): One-time schema creation + reference data seeding

Nothing here is created at import time. The process calls create_engine()
and init_db() once at startup with its Settings object (see
finpay.main.lifespan) and passes the resulting session factory down, so there
is no module-level engine to patch in tests.

Referential integrity:
  Every foreign key declares its ON DELETE rule (cascade / restrict / set
  null) and the storage engine enforces it. SQLite only does so when
  ``PRAGMA foreign_keys=ON`` is issued on each connection, which
  create_engine() arranges.

Savepoints:
  Every flush runs inside a SAVEPOINT (see FinPayContext.save). SQLite's
  driver only honours SAVEPOINT when SQLAlchemy emits BEGIN itself, so
  create_engine() switches the driver's own transaction handling off.
"""

import logging

from sqlalchemy import MetaData, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from finpay.config import Settings
from finpay.constraints import FinPaySession
from finpay.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Deterministic constraint names, so CHECK violations can be traced back to
# their column (ck_<table>_<column>) and migrations stay stable.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class, which provides:
      - Metadata tracking with a shared constraint naming convention
      - Common declarative mapping features
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # The driver's implicit BEGIN breaks SAVEPOINT; _begin_sqlite_transaction
    # emits BEGIN itself instead
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn):
    conn.exec_driver_sql("BEGIN")


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine from the configured connection string.

    Args:
        settings: Application settings; only DATABASE_URL and DEBUG are read.

    Returns:
        A new AsyncEngine. The caller owns it and must dispose() it.

    Raises:
        ConfigurationError: If DATABASE_URL is missing or blank.
    """
    url = (settings.DATABASE_URL or "").strip()
    if not url:
        raise ConfigurationError(
            "DATABASE_URL is not set; configure it in the environment or .env"
        )

    # echo=True in debug mode logs all SQL statements
    engine = create_async_engine(url, echo=settings.DEBUG)

    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_sqlite_transaction)

    logger.info(
        "Database engine created for %s",
        make_url(url).render_as_string(hide_password=True),
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory used for every request-scoped context.

    expire_on_commit=False prevents lazy-load errors after commit — without
    this, accessing attributes on a committed object would trigger a
    synchronous DB call, which fails in async context.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        sync_session_class=FinPaySession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> int:
    """
    Create all tables (if missing) and guarantee the reference categories.

    Safe to run on every start: create_all skips existing tables and
    seeding skips rows that are already present.

    Returns:
        Number of seed rows inserted (0 on an already-initialized store).

    Raises:
        SeedConflictError: If a seed id exists with different content.
    """
    # Imported here so every model is registered on Base.metadata
    from finpay import models  # noqa: F401
    from finpay.seed import seed_categories

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready (%d tables)", len(Base.metadata.tables))

    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        try:
            inserted = await seed_categories(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return inserted
