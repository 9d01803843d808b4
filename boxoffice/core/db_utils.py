from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def db_transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


# Largest value a BigInteger column holds on both SQLite and PostgreSQL
BIGINT_MAX = 2**63 - 1
