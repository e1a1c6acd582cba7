"""Shared fixtures for the session store test suite."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient

from sessionstore import CookieOptions, IdentityCodec, InMemoryBackend, KeyPair, SessionStore

SESSION_NAME = "s"
AUTH_KEY = b"test-authentication-key-32-bytes"
ENC_KEY = b"0123456789abcdef"


def make_request(cookies: dict[str, str] | None = None) -> Request:
    """Bare ASGI request carrying the given cookies."""
    headers = []
    if cookies:
        header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", header.encode()))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": headers,
            "query_string": b"",
        }
    )


def set_cookie_headers(response: Response) -> list[str]:
    return response.headers.getlist("set-cookie")


def cookie_value(response: Response, name: str = SESSION_NAME) -> str:
    """Value of the cookie ``name`` set on ``response``."""
    for header in set_cookie_headers(response):
        key, _, rest = header.partition("=")
        if key == name:
            return rest.split(";", 1)[0]
    raise AssertionError(f"no {name!r} cookie on response")


# ── Store ─────────────────────────────────────────────────────────────────

@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def codec() -> IdentityCodec:
    return IdentityCodec([KeyPair(AUTH_KEY, ENC_KEY)])


@pytest.fixture
def cookie_options() -> CookieOptions:
    return CookieOptions.from_max_age(240, same_site="strict")


@pytest.fixture
def store(backend, codec, cookie_options) -> SessionStore:
    """Store without the index setup step; see SessionStore.create for that."""
    return SessionStore(backend, codec, cookie_options)


# ── App & Client ──────────────────────────────────────────────────────────

@pytest.fixture
def app(store):
    """Minimal app exercising the store through real HTTP requests."""
    app = FastAPI()

    @app.get("/get")
    async def read(request: Request):
        session = await store.get(request, SESSION_NAME)
        return {"is_new": session.is_new, "values": session.values}

    @app.post("/set/{key}/{value}")
    async def write(key: str, value: str, request: Request, response: Response):
        session = await store.get(request, SESSION_NAME)
        session.values[key] = value
        await store.save(request, response, session)
        return {"id": session.id}

    @app.post("/logout")
    async def logout(request: Request, response: Response):
        session = await store.get(request, SESSION_NAME)
        session.expire()
        await store.save(request, response, session)
        return {"id": session.id}

    return app


@pytest.fixture
def client(app) -> TestClient:
    """TestClient with cookie persistence."""
    return TestClient(app, cookies={})
