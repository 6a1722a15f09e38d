from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import OperationalError

from ..domain.errors import TransientStoreFailure

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors() -> AsyncIterator[None]:
    """Re-raise lock waits, deadlocks and serialization failures as TransientStoreFailure.

    Any other driver error, such as a missing table, propagates unchanged.
    """
    try:
        yield
    except OperationalError as exc:
        logger.warning("transaction aborted by the store: %s", exc.orig)
        raise TransientStoreFailure("the reservation store is busy, retry the request") from exc
