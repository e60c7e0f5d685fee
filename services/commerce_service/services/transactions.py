"""Transaction boundary shared by every write path that touches stock or orders."""

from contextlib import asynccontextmanager

from libs.common.logging import get_logger
from services.commerce_service.errors import (
    CommerceError,
    ConcurrentUpdate,
    DatabaseUnavailable,
    PersistenceError,
)
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

logger = get_logger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """Commit on success; roll back and raise a typed error on failure.

    Usage:
        async with unit_of_work(db, "cancel"):
            ...
    """
    try:
        yield
        await db.commit()
    except CommerceError:
        await db.rollback()
        raise
    except StaleDataError as e:
        await db.rollback()
        logger.warning("%s lost a concurrent update race", operation)
        raise ConcurrentUpdate() from e
    except OperationalError as e:
        await db.rollback()
        logger.error("%s aborted: database unavailable (%s)", operation, e.orig)
        raise DatabaseUnavailable() from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("%s aborted by storage failure", operation)
        raise PersistenceError() from e
    except Exception:
        await db.rollback()
        raise
