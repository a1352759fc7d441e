"""
Async SQLAlchemy engine & session factory for the database snapshot backend.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


def build_engine(database_url: str) -> AsyncEngine:
    engine_args: dict = {
        "echo": False,
        "pool_pre_ping": True,
    }

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # One shared connection, otherwise every session sees an empty db
        engine_args.update(
            {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        )
    elif "postgresql" in database_url:
        engine_args.update(
            {
                "pool_size": 5,
                "max_overflow": 5,
                "pool_recycle": 300,
            }
        )

    return create_async_engine(database_url, **engine_args)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
