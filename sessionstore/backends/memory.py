"""In-memory document backend for development/testing."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any

from ..records import SessionRecord, new_session_id
from .base import IndexSpec


class InMemoryBackend:
    """Document backend kept in a dict.

    Not suitable for production — sessions are lost on restart and not
    shared across processes.

    TTL indexes are honoured the way a document database does: a document
    whose indexed timestamp is more than ``expire_after_seconds`` in the
    past is removed, either by ``reap_expired()`` (the background monitor
    of a real database) or lazily when it is looked up.
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._indexes: list[IndexSpec] = [IndexSpec(key="_id")]

    def __len__(self) -> int:
        return len(self._docs)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._docs

    def document(self, session_id: str) -> dict[str, Any] | None:
        """Raw stored document, for inspection in tests."""
        doc = self._docs.get(session_id)
        return copy.deepcopy(doc) if doc is not None else None

    def _is_expired(self, doc: dict[str, Any], now: datetime) -> bool:
        for index in self._indexes:
            if index.expire_after_seconds is None:
                continue
            anchor = doc.get(index.key)
            if anchor is None:
                continue  # sparse: documents without the field never expire
            if anchor + timedelta(seconds=index.expire_after_seconds) <= now:
                return True
        return False

    def reap_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        expired = [sid for sid, doc in self._docs.items() if self._is_expired(doc, now)]
        for sid in expired:
            del self._docs[sid]
        return len(expired)

    async def find_one(self, session_id: str) -> SessionRecord | None:
        doc = self._docs.get(session_id)
        if doc is None:
            return None
        if self._is_expired(doc, datetime.now(timezone.utc)):
            del self._docs[session_id]
            return None
        return SessionRecord.from_document(copy.deepcopy(doc))

    async def insert_one(self, record: SessionRecord) -> str:
        session_id = new_session_id()
        while session_id in self._docs:
            session_id = new_session_id()
        doc = copy.deepcopy(record.to_document())
        doc["_id"] = session_id
        self._docs[session_id] = doc
        return session_id

    async def update_one(self, session_id: str, record: SessionRecord) -> int:
        if session_id not in self._docs:
            return 0
        doc = copy.deepcopy(record.to_document())
        doc["_id"] = session_id
        self._docs[session_id] = doc
        return 1

    async def delete_one(self, session_id: str) -> int:
        return 1 if self._docs.pop(session_id, None) is not None else 0

    async def list_indexes(self) -> list[IndexSpec]:
        return list(self._indexes)

    async def create_index(self, spec: IndexSpec) -> None:
        # Like a document database: creating an identical index is a no-op,
        # a conflicting one on the same key is an error.
        for existing in self._indexes:
            if existing.key == spec.key:
                if existing == spec:
                    return
                raise ValueError(f"an index on {spec.key!r} already exists with other options")
        self._indexes.append(spec)
