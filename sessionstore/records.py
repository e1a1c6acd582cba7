"""Mapping between session values and persisted session records.

Persisted shape::

    {_id, data, modified_at, expires_at, ttl}

``ttl`` is the field the backend's expiry index watches. It is stamped with
the write time, so an index expiring documents ``max_age`` seconds after
``ttl`` removes them at ``expires_at``.
"""

from __future__ import annotations

import math
import re
import secrets
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from .errors import MalformedIdentifierError, PayloadError

TTL_FIELD = "ttl"

SessionValue = Union[
    None, bool, int, float, str, bytes, dict[str, "SessionValue"], list["SessionValue"]
]

_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def new_session_id() -> str:
    """Generate a 12-byte identifier rendered as 24 hex characters."""
    return secrets.token_hex(12)


def parse_session_id(value: str) -> str:
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise MalformedIdentifierError(f"not a valid session identifier: {value!r}")
    return value


@dataclass
class SessionRecord:
    id: str
    data: dict[str, SessionValue] = field(default_factory=dict)
    modified_at: datetime | None = None
    expires_at: datetime | None = None
    ttl: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "data": self.data,
            "modified_at": self.modified_at,
            "expires_at": self.expires_at,
            TTL_FIELD: self.ttl,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> SessionRecord:
        return cls(
            id=doc["_id"],
            data=dict(doc.get("data") or {}),
            modified_at=doc.get("modified_at"),
            expires_at=doc.get("expires_at"),
            ttl=doc.get(TTL_FIELD),
        )


def _convert(value: Any, path: str) -> SessionValue:
    if isinstance(value, float) and not math.isfinite(value):
        raise PayloadError(f"non-finite float {value!r} at {path or 'top level'}")
    # bool is checked with the scalars; it is an int subclass either way
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, Mapping):
        out: dict[str, SessionValue] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise PayloadError(f"non-string key {k!r} at {path or 'top level'}")
            out[k] = _convert(v, f"{path}.{k}" if path else k)
        return out
    if isinstance(value, (list, tuple)):
        return [_convert(v, f"{path}[{i}]") for i, v in enumerate(value)]
    raise PayloadError(
        f"unsupported value of type {type(value).__name__} at {path or 'top level'}"
    )


def to_record(
    values: Mapping[Any, Any],
    max_age: int,
    session_id: str = "",
    now: datetime | None = None,
) -> SessionRecord:
    """Build the record written on every save.

    Keys must be strings and values must be JSON-like (plus bytes); anything
    else raises PayloadError instead of being coerced.
    """
    data = _convert(values, "")
    now = now or datetime.now(timezone.utc)
    return SessionRecord(
        id=session_id,
        data=data,  # type: ignore[arg-type]
        modified_at=now,
        expires_at=now + timedelta(seconds=max_age),
        ttl=now,
    )


def from_record(record: SessionRecord, values: MutableMapping[str, Any]) -> None:
    """Merge the record's payload into ``values``, overwriting on collision."""
    for k, v in record.data.items():
        values[k] = v
