import json

import pytest

from auth.session_store import CachedUser, FileSessionStore, MemorySessionStore

OWNER = CachedUser(id=7, username="owner", role="HOSTEL_OWNER", hostel_id=3)


@pytest.mark.asyncio
async def test_memory_store_set_get() -> None:
    store = MemorySessionStore()

    await store.set(OWNER)

    assert await store.get() == OWNER


@pytest.mark.asyncio
async def test_memory_store_clear() -> None:
    store = MemorySessionStore()
    await store.set(OWNER)

    await store.clear()

    assert await store.get() is None


@pytest.mark.asyncio
async def test_file_store_persists(tmp_path) -> None:
    path = tmp_path / "session.json"

    await FileSessionStore(path).set(OWNER)

    assert await FileSessionStore(path).get() == OWNER


@pytest.mark.asyncio
async def test_file_store_clear(tmp_path) -> None:
    path = tmp_path / "session.json"
    store = FileSessionStore(path)
    await store.set(OWNER)

    await store.clear()

    assert await store.get() is None
    assert not path.exists()


@pytest.mark.asyncio
async def test_file_store_missing_file(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "missing.json")

    assert await store.get() is None
    await store.clear()


@pytest.mark.asyncio
async def test_file_store_corrupt_file_is_discarded(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert await FileSessionStore(path).get() is None
    assert not path.exists()


@pytest.mark.asyncio
async def test_file_store_ignores_unknown_keys(tmp_path) -> None:
    path = tmp_path / "session.json"
    payload = {"id": 7, "username": "owner", "role": "HOSTEL_OWNER", "hostel_id": 3, "extra": 1}
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert await FileSessionStore(path).get() == OWNER


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"id": 7, "username": "owner"}, ["owner"]])
async def test_file_store_invalid_user_is_discarded(tmp_path, payload) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert await FileSessionStore(path).get() is None
    assert not path.exists()


def test_cached_user_from_payload() -> None:
    user = CachedUser.from_payload(
        {"id": 1, "username": "admin", "role": "SUPER_ADMIN", "hostelId": None}
    )

    assert user == CachedUser(id=1, username="admin", role="SUPER_ADMIN", hostel_id=None)


def test_cached_user_rejects_missing_role() -> None:
    with pytest.raises(RuntimeError, match="missing role"):
        CachedUser.from_payload({"id": 1, "username": "admin"})
