"""
Async SQLAlchemy engine and session factory.

Nothing here is a module-level singleton: the service container builds
one engine per process from Settings and passes the session factory to
the stores that need it.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from leaselogic.db.models import Base


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pooling options only apply to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": 30},
        )
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables (local runs and tests; deployments use Alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
