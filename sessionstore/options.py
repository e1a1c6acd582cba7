"""Cookie options and the session expiry state."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, Union

DEFAULT_MAX_AGE = 30 * 24 * 3600  # 30 days

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Active:
    """The session stays alive; ``seconds`` is the cookie Max-Age.

    ``seconds == 0`` emits no Max-Age, i.e. a browser-session cookie.
    """

    seconds: int = DEFAULT_MAX_AGE

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError("Active expiry needs a non-negative number of seconds")


class _ExpireNow(enum.Enum):
    EXPIRE_NOW = "expire-now"

    def __repr__(self) -> str:
        return "EXPIRE_NOW"


EXPIRE_NOW = _ExpireNow.EXPIRE_NOW

Expiry = Union[Active, _ExpireNow]


def expiry_from_max_age(max_age: int) -> Expiry:
    """Translate a cookie-style max-age (negative means delete) into an Expiry."""
    if max_age < 0:
        return EXPIRE_NOW
    return Active(max_age)


@dataclass
class CookieOptions:
    """Attributes of the session cookie.

    The store keeps one instance as its defaults and hands every session
    its own copy, so callers may change a session's expiry before saving
    without affecting other requests.
    """

    path: str = "/"
    domain: str | None = None
    expiry: Expiry = field(default_factory=Active)
    secure: bool = False
    http_only: bool = True
    same_site: Literal["lax", "strict", "none"] | None = "lax"

    @classmethod
    def from_max_age(cls, max_age: int, **kwargs: Any) -> CookieOptions:
        return cls(expiry=expiry_from_max_age(max_age), **kwargs)

    @property
    def max_age(self) -> int:
        if self.expiry is EXPIRE_NOW:
            return -1
        return self.expiry.seconds

    @max_age.setter
    def max_age(self, value: int) -> None:
        self.expiry = expiry_from_max_age(value)

    @property
    def expire_now(self) -> bool:
        return self.expiry is EXPIRE_NOW

    def copy(self) -> CookieOptions:
        return replace(self)

    def cookie_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``starlette.responses.Response.set_cookie``."""
        kwargs: dict[str, Any] = {
            "path": self.path,
            "domain": self.domain or None,
            "secure": self.secure,
            "httponly": self.http_only,
            "samesite": self.same_site,
        }
        if self.expiry is EXPIRE_NOW:
            kwargs["max_age"] = 0
            kwargs["expires"] = _EPOCH
        elif self.expiry.seconds > 0:
            kwargs["max_age"] = self.expiry.seconds
            kwargs["expires"] = self.expiry.seconds
        return kwargs
