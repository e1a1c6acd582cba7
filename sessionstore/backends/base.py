"""Document backend protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..records import SessionRecord


@dataclass(frozen=True)
class IndexSpec:
    """An index on a single field; ``expire_after_seconds`` makes it a TTL index."""

    key: str
    expire_after_seconds: int | None = None
    sparse: bool = False


@runtime_checkable
class DocumentBackend(Protocol):
    """Keyed document storage for session records.

    Implementations raise their driver's exceptions unchanged; the store
    wraps them into BackendError with the failing phase.
    """

    async def find_one(self, session_id: str) -> SessionRecord | None:
        """Return the record with this id, or None if there is none."""
        ...

    async def insert_one(self, record: SessionRecord) -> str:
        """Insert a new record and return the identifier the backend assigned."""
        ...

    async def update_one(self, session_id: str, record: SessionRecord) -> int:
        """Replace payload and timestamps of an existing record. Returns the match count."""
        ...

    async def delete_one(self, session_id: str) -> int:
        """Delete a record. Returns the number of records deleted (0 or 1)."""
        ...

    async def list_indexes(self) -> list[IndexSpec]:
        ...

    async def create_index(self, spec: IndexSpec) -> None:
        ...
