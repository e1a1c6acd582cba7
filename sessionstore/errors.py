"""Exceptions raised by the session store."""

from __future__ import annotations


class SessionStoreError(Exception):
    """Base class for every error raised by sessionstore."""


class ConfigurationError(SessionStoreError):
    """The store or codec was configured with unusable values."""


class IndexSetupError(ConfigurationError):
    """The expiry index could not be verified or created."""


class DecodeError(SessionStoreError):
    """A session cookie failed authentication, expired, or could not be decrypted."""


class MalformedIdentifierError(SessionStoreError):
    """A decoded session identifier is not a valid backend key."""


class PayloadError(SessionStoreError):
    """Session values contain a key or value the backend cannot store."""


class BackendError(SessionStoreError):
    """A document backend operation failed.

    ``phase`` names the step that failed: ``lookup``, ``insert``, ``update``,
    ``delete`` or ``index``.
    """

    def __init__(self, phase: str, message: str) -> None:
        super().__init__(f"{phase}: {message}")
        self.phase = phase


class OperationTimeoutError(BackendError):
    """The caller's deadline passed before a backend operation finished."""
