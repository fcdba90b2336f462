from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.db.config import AsyncSessionLocal


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    Uncommitted work is rolled back when the session closes, so a request
    cancelled before its commit leaves nothing behind.
    """
    async with AsyncSessionLocal() as session:
        yield session
