"""
database.py: async PostgreSQL access for the payroll service.

One engine per process. Routes receive a session through get_db();
store.py is the only module that issues queries on it.
"""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from payroll.config import settings


class Base(DeclarativeBase):
    """Metadata root for city_tax_data and salary_calculations (see payroll/models/)."""


# salary_calculations inserts bind request/breakdown JSON; parameters never reach the SQL log
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    hide_parameters=True,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. store.py only flushes; the transaction is
    committed here once the route returns, or rolled back if it raised.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
