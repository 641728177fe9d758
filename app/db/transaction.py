"""Transaction scope shared by every lifecycle operation."""

from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def atomic(db: AsyncSession):
    """Commit everything done inside the block, or roll all of it back.

    A rollback expires every instance the session holds, including ones the
    caller loaded before the block. Reading an attribute of such an instance
    afterwards would need a lazy refresh, which an ``AsyncSession`` cannot do
    implicitly; callers that keep working with a session after a failed
    operation hold on to ids and re-read rows through ``crud``.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
