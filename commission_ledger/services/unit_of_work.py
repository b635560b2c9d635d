"""
Transaction boundary shared by every mutating ledger operation.

    async with atomic(self.db, "create_withdrawal"):
        ...

commits when the block finishes and rolls back on any exception, so partial
state (a completed withdrawal with only half of its commissions paid) is
never committed. Driver errors are translated to PersistenceError.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.core.exceptions import LedgerError, PersistenceError


logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    try:
        yield db
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except DBAPIError as exc:
        await db.rollback()
        logger.error(f"{operation} failed in the database, rolled back: {exc.orig!r}")
        raise PersistenceError(
            f"{operation} could not be committed; retry later",
            {"operation": operation, "cause": type(exc.orig).__name__},
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"{operation} failed, rolled back: {exc!r}")
        raise PersistenceError(
            f"{operation} could not be committed",
            {"operation": operation, "cause": type(exc).__name__},
        ) from exc
    except Exception:
        await db.rollback()
        raise
