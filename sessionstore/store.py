"""Session lifecycle: cookie-held identity, document-held payload.

The cookie carries nothing but the signed (optionally encrypted) session
identifier. The payload lives in a document backend, one record per
session, and a TTL index on the backend removes records nobody saved for
``max_age`` seconds.

Resolving a request:

    no cookie            -> new session
    cookie fails decode  -> DecodeError
    no record for the id -> new session (stale cookie)
    record found         -> existing session with the stored values

Saving a session:

    expiry is EXPIRE_NOW -> delete the record (missing record is fine)
    new session          -> insert; the backend assigns the id
    existing session     -> update payload and timestamps by id

The backend write always finishes before the cookie is set, so a failed
write never emits a cookie. An update whose record was already reaped is
dropped and the cookie still names the vanished record; the next request
then starts a new session. After an expiring save the handle is reset to a
new session, so saving it again inserts a fresh record. Concurrent saves for
the same session are last-write-wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from starlette.requests import HTTPConnection
from starlette.responses import Response

from .backends.base import DocumentBackend
from .codec import IdentityCodec
from .errors import (
    BackendError,
    ConfigurationError,
    IndexSetupError,
    OperationTimeoutError,
)
from .options import EXPIRE_NOW, CookieOptions
from .records import from_record, parse_session_id, to_record
from .ttl import ensure_expiry_index

logger = logging.getLogger(__name__)

REGISTRY_ATTR = "sessionstore_registry"

T = TypeVar("T")


def _deadline(timeout: float | None) -> float | None:
    if timeout is None:
        return None
    return asyncio.get_running_loop().time() + timeout


def _registry(request: HTTPConnection) -> dict[str, Session]:
    registry = getattr(request.state, REGISTRY_ATTR, None)
    if registry is None:
        registry = {}
        setattr(request.state, REGISTRY_ATTR, registry)
    return registry


class Session:
    """A request-scoped session handle.

    ``values`` is the payload, ``id`` is empty until the session has been
    stored, and ``options`` is this session's own copy of the store's
    cookie defaults.
    """

    def __init__(self, store: SessionStore, name: str, options: CookieOptions) -> None:
        self.store = store
        self.name = name
        self.id = ""
        self.values: dict[str, Any] = {}
        self.is_new = True
        self.options = options

    def expire(self) -> None:
        """Mark the session for deletion on the next save."""
        self.options.expiry = EXPIRE_NOW

    async def save(
        self, request: HTTPConnection, response: Response, *, timeout: float | None = None
    ) -> None:
        await self.store.save(request, response, self, timeout=timeout)

    def __repr__(self) -> str:
        return f"Session(name={self.name!r}, id={self.id!r}, is_new={self.is_new})"


class SessionStore:
    """Sessions in signed cookies and a document backend.

    Build with ``await SessionStore.create(...)``, which also makes sure the
    backend has its expiry index. The store keeps no per-request state; the
    backend and codec are shared read-only by all requests.
    """

    def __init__(
        self,
        backend: DocumentBackend,
        codec: IdentityCodec,
        cookie: CookieOptions | None = None,
    ) -> None:
        cookie = cookie or CookieOptions()
        if cookie.expire_now or cookie.max_age <= 0:
            raise ConfigurationError(
                "the default cookie max-age must be a positive number of seconds"
            )
        self.backend = backend
        self.codec = codec
        self.cookie = cookie

    @classmethod
    async def create(
        cls,
        backend: DocumentBackend,
        codec: IdentityCodec,
        cookie: CookieOptions | None = None,
        *,
        timeout: float | None = None,
    ) -> SessionStore:
        store = cls(backend, codec, cookie)
        try:
            async with asyncio.timeout(timeout):
                await ensure_expiry_index(backend, store.max_age)
        except TimeoutError as e:
            raise IndexSetupError("timed out adding time to live index") from e
        return store

    @property
    def max_age(self) -> int:
        return self.cookie.max_age

    async def get(
        self, request: HTTPConnection, name: str, *, timeout: float | None = None
    ) -> Session:
        """Return the session ``name`` for this request, resolving it only once.

        The handle is registered on the request, so later calls with the
        same name return the same object. Failed resolutions are not cached.
        """
        registry = _registry(request)
        session = registry.get(name)
        if session is None:
            session = await self.new(request, name, timeout=timeout)
            registry[name] = session
        return session

    async def new(
        self, request: HTTPConnection, name: str, *, timeout: float | None = None
    ) -> Session:
        """Resolve the session ``name`` from the request cookie.

        Unlike get(), every call decodes the cookie and queries the backend
        again, and the result is not registered on the request.
        """
        session = Session(self, name, self.cookie.copy())

        cookie_value = request.cookies.get(name)
        if not cookie_value:
            logger.debug("No %r cookie, starting a new session", name)
            return session

        session_id = self.codec.decode(name, cookie_value)
        if not session_id:
            # cookie written for a session that was never stored
            return session
        parse_session_id(session_id)

        record = await self._call("lookup", _deadline(timeout), self.backend.find_one, session_id)
        if record is None:
            logger.debug("No record for session %s, starting a new session", session_id)
            return session

        from_record(record, session.values)
        session.id = session_id
        session.is_new = False
        return session

    async def save(
        self,
        request: HTTPConnection,
        response: Response,
        session: Session,
        *,
        timeout: float | None = None,
    ) -> None:
        """Write the session to the backend, then set its cookie on ``response``.

        If the backend write fails, the error is raised and no cookie is set.
        """
        deadline = _deadline(timeout)

        if session.options.expire_now:
            if session.id:
                session_id = parse_session_id(session.id)
                deleted = await self._call("delete", deadline, self.backend.delete_one, session_id)
                logger.info("%d session(s) deleted", deleted)
        elif session.is_new:
            record = to_record(session.values, self.max_age)
            session.id = await self._call("insert", deadline, self.backend.insert_one, record)
            session.is_new = False
            logger.info("Session %s inserted", session.id)
        else:
            session_id = parse_session_id(session.id)
            record = to_record(session.values, self.max_age, session_id)
            matched = await self._call(
                "update", deadline, self.backend.update_one, session_id, record
            )
            if not matched:
                logger.warning("Session %s no longer exists, update dropped", session_id)

        encoded = self.codec.encode(session.name, session.id)
        response.set_cookie(session.name, encoded, **session.options.cookie_kwargs())

        if session.options.expire_now:
            session.id = ""
            session.is_new = True

    async def _call(
        self,
        phase: str,
        deadline: float | None,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        if deadline is not None and asyncio.get_running_loop().time() >= deadline:
            raise OperationTimeoutError(phase, "deadline passed before the backend was called")
        try:
            async with asyncio.timeout_at(deadline):
                return await fn(*args)
        except TimeoutError as e:
            if deadline is None:
                logger.error("Session %s failed: %s", phase, e)
                raise BackendError(phase, f"driver timeout: {e}") from e
            raise OperationTimeoutError(phase, "deadline exceeded") from e
        except Exception as e:
            logger.error("Session %s failed: %s", phase, e)
            raise BackendError(phase, str(e)) from e


async def save_all(
    request: HTTPConnection, response: Response, *, timeout: float | None = None
) -> None:
    """Save every session registered on the request by SessionStore.get()."""
    for session in list(_registry(request).values()):
        await session.save(request, response, timeout=timeout)
