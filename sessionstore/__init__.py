"""Server-side sessions: signed identifier cookie, document-stored payload."""

from .backends import DocumentBackend, DynamoDBDocumentBackend, IndexSpec, InMemoryBackend
from .codec import IdentityCodec, KeyPair
from .errors import (
    BackendError,
    ConfigurationError,
    DecodeError,
    IndexSetupError,
    MalformedIdentifierError,
    OperationTimeoutError,
    PayloadError,
    SessionStoreError,
)
from .options import EXPIRE_NOW, Active, CookieOptions
from .records import SessionRecord
from .store import Session, SessionStore, save_all
from .ttl import ensure_expiry_index

__all__ = [
    "Active",
    "BackendError",
    "ConfigurationError",
    "CookieOptions",
    "DecodeError",
    "DocumentBackend",
    "DynamoDBDocumentBackend",
    "EXPIRE_NOW",
    "IdentityCodec",
    "IndexSetupError",
    "IndexSpec",
    "InMemoryBackend",
    "KeyPair",
    "MalformedIdentifierError",
    "OperationTimeoutError",
    "PayloadError",
    "Session",
    "SessionRecord",
    "SessionStore",
    "SessionStoreError",
    "ensure_expiry_index",
    "save_all",
]
