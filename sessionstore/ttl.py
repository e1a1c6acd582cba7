"""Expiry index setup.

Documents are never reaped by the store itself: the backend's TTL index
removes each record ``expire_after_seconds`` after its ``ttl`` timestamp.
"""

from __future__ import annotations

import logging

from .backends.base import DocumentBackend, IndexSpec
from .errors import IndexSetupError
from .records import TTL_FIELD

logger = logging.getLogger(__name__)


async def ensure_expiry_index(
    backend: DocumentBackend,
    expire_after_seconds: int,
    field: str = TTL_FIELD,
) -> bool:
    """Create a sparse TTL index on ``field`` unless one already exists.

    Safe to call repeatedly. Returns True if an index was created. Any
    backend failure is raised as IndexSetupError.
    """
    try:
        indexes = await backend.list_indexes()
        if any(index.key == field for index in indexes):
            logger.debug("Expiry index on %r already present", field)
            return False

        await backend.create_index(
            IndexSpec(key=field, expire_after_seconds=expire_after_seconds, sparse=True)
        )
    except Exception as e:
        logger.error("Expiry index setup failed: %s", e)
        raise IndexSetupError(f"adding time to live index on {field!r}: {e}") from e

    logger.info("Created expiry index on %r (expire after %ds)", field, expire_after_seconds)
    return True
