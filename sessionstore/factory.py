"""Build a backend and a store from Settings."""

from __future__ import annotations

from .backends import DynamoDBDocumentBackend, InMemoryBackend
from .backends.base import DocumentBackend
from .codec import IdentityCodec
from .config import Settings, get_settings
from .store import SessionStore


def build_backend(s: Settings) -> DocumentBackend:
    if s.backend == "dynamodb":
        return DynamoDBDocumentBackend(
            table_name=s.dynamodb_table,
            expire_after_seconds=s.cookie_max_age,
            endpoint_url=s.dynamodb_endpoint,
            region_name=s.region,
        )
    return InMemoryBackend()


async def create_store(
    s: Settings | None = None, *, backend: DocumentBackend | None = None
) -> SessionStore:
    """Create a SessionStore configured from ``s`` (default: the environment)."""
    s = s or get_settings()
    return await SessionStore.create(
        backend or build_backend(s),
        IdentityCodec(s.key_pairs),
        s.cookie_options,
        timeout=s.operation_timeout,
    )
