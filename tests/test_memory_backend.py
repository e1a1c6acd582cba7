"""Tests for the in-memory document backend."""

from datetime import datetime, timedelta, timezone

import pytest

from sessionstore import IndexSpec, InMemoryBackend
from sessionstore.records import SessionRecord, to_record


def _record(values=None, age=0):
    return to_record(values or {"k": "v"}, 60, now=datetime.now(timezone.utc) - timedelta(seconds=age))


@pytest.mark.asyncio
async def test_insert_assigns_id():
    backend = InMemoryBackend()
    first = await backend.insert_one(_record())
    second = await backend.insert_one(_record())

    assert first != second
    assert len(backend) == 2
    found = await backend.find_one(first)
    assert isinstance(found, SessionRecord)
    assert found.id == first
    assert found.data == {"k": "v"}


@pytest.mark.asyncio
async def test_find_missing():
    assert await InMemoryBackend().find_one("0" * 24) is None


@pytest.mark.asyncio
async def test_update_replaces_and_counts():
    backend = InMemoryBackend()
    sid = await backend.insert_one(_record({"a": 1}))

    assert await backend.update_one(sid, _record({"b": 2})) == 1
    assert (await backend.find_one(sid)).data == {"b": 2}
    assert await backend.update_one("f" * 24, _record()) == 0
    assert len(backend) == 1


@pytest.mark.asyncio
async def test_delete_counts():
    backend = InMemoryBackend()
    sid = await backend.insert_one(_record())
    assert await backend.delete_one(sid) == 1
    assert await backend.delete_one(sid) == 0


@pytest.mark.asyncio
async def test_stored_documents_are_isolated():
    backend = InMemoryBackend()
    record = _record({"list": [1]})
    sid = await backend.insert_one(record)
    record.data["list"].append(2)

    found = await backend.find_one(sid)
    found.data["list"].append(3)
    assert backend.document(sid)["data"] == {"list": [1]}


@pytest.mark.asyncio
async def test_ttl_index_expires_documents():
    backend = InMemoryBackend()
    await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=60, sparse=True))
    old = await backend.insert_one(_record(age=120))
    fresh = await backend.insert_one(_record())

    assert backend.reap_expired() == 1
    assert old not in backend
    assert fresh in backend


@pytest.mark.asyncio
async def test_expired_documents_are_not_found():
    backend = InMemoryBackend()
    await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=60, sparse=True))
    sid = await backend.insert_one(_record(age=120))

    assert await backend.find_one(sid) is None
    assert sid not in backend


@pytest.mark.asyncio
async def test_documents_without_ttl_field_never_expire():
    backend = InMemoryBackend()
    await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=60, sparse=True))
    record = _record(age=120)
    record.ttl = None
    sid = await backend.insert_one(record)

    assert backend.reap_expired(datetime.now(timezone.utc) + timedelta(days=365)) == 0
    assert await backend.find_one(sid) is not None


@pytest.mark.asyncio
async def test_without_ttl_index_nothing_expires():
    backend = InMemoryBackend()
    sid = await backend.insert_one(_record(age=3600))
    assert await backend.find_one(sid) is not None


@pytest.mark.asyncio
async def test_conflicting_index_is_rejected():
    backend = InMemoryBackend()
    await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=60, sparse=True))
    await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=60, sparse=True))
    with pytest.raises(ValueError):
        await backend.create_index(IndexSpec(key="ttl", expire_after_seconds=30, sparse=True))
    assert len([i for i in await backend.list_indexes() if i.key == "ttl"]) == 1
