import asyncio

import pytest

from ledger_client.core.session import SessionState
from ledger_client.core.store import JsonFileSessionStore, MemorySessionStore


class BrokenStore:
    async def get(self, key):
        raise OSError("disk gone")

    async def set(self, key, value):
        raise OSError("disk gone")

    async def delete(self, key):
        raise OSError("disk gone")


class SlowStore(MemorySessionStore):
    """Reads park until released, so writes can land mid-lookup."""

    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.reading = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, key):
        self.reading.set()
        await self.release.wait()
        return await super().get(key)


class DeleteFailsStore(MemorySessionStore):
    async def delete(self, key):
        raise OSError("read-only filesystem")


@pytest.mark.asyncio
async def test_tenant_falls_back_to_default() -> None:
    state = SessionState(default_tenant_id="tenant_demo")
    assert await state.get_tenant_id() == "tenant_demo"
    assert await state.get_access_token() is None

    snap = await state.snapshot()
    assert snap.tenant_id == "tenant_demo"
    assert snap.company_id is None


@pytest.mark.asyncio
async def test_set_session_is_partial_and_persisted() -> None:
    store = MemorySessionStore()
    state = SessionState(default_tenant_id="tenant_demo", store=store)

    await state.set_session(access_token="a1", refresh_token="r1")
    await state.set_session(company_id="c9")

    snap = await state.snapshot()
    assert (snap.access_token, snap.refresh_token, snap.company_id) == ("a1", "r1", "c9")
    assert store.as_dict() == {"auth_token": "a1", "refresh_token": "r1", "company_id": "c9"}

    await state.set_session(company_id=None)
    assert await state.get_company_id() is None
    assert "company_id" not in store.as_dict()


@pytest.mark.asyncio
async def test_hydrates_from_store_including_legacy_company_key() -> None:
    store = MemorySessionStore({"auth_token": "stored", "tenant_id": "t2", "companyId": "legacy_c"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)

    snap = await state.snapshot()
    assert snap.access_token == "stored"
    assert snap.tenant_id == "t2"
    assert snap.company_id == "legacy_c"


@pytest.mark.asyncio
async def test_clear_session_removes_every_key() -> None:
    store = MemorySessionStore({"companyId": "legacy_c"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)
    await state.set_session(access_token="a1", refresh_token="r1", tenant_id="t1", company_id="c1")

    await state.clear_session()

    assert store.as_dict() == {}
    snap = await state.snapshot()
    assert snap.access_token is None
    assert snap.tenant_id == "tenant_demo"


@pytest.mark.asyncio
async def test_store_failures_do_not_break_the_session() -> None:
    state = SessionState(default_tenant_id="tenant_demo", store=BrokenStore())

    await state.set_session(access_token="a1")
    assert await state.get_access_token() == "a1"
    assert await state.get_refresh_token() is None


@pytest.mark.asyncio
async def test_concurrent_updates_never_mix_fields() -> None:
    state = SessionState(default_tenant_id="tenant_demo", store=MemorySessionStore())

    await asyncio.gather(
        state.set_session(access_token="a1", tenant_id="t1"),
        state.set_session(access_token="a2", tenant_id="t2"),
    )
    snap = await state.snapshot()
    assert (snap.access_token, snap.tenant_id) in {("a1", "t1"), ("a2", "t2")}


@pytest.mark.asyncio
async def test_file_store_survives_a_new_session(tmp_path) -> None:
    path = tmp_path / "session.json"
    first = SessionState(default_tenant_id="tenant_demo", store=JsonFileSessionStore(path))
    await first.set_session(access_token="a1", company_id="c1")

    second = SessionState(default_tenant_id="tenant_demo", store=JsonFileSessionStore(path))
    snap = await second.snapshot()
    assert snap.access_token == "a1"
    assert snap.company_id == "c1"


@pytest.mark.asyncio
async def test_file_store_reads_missing_file_as_empty(tmp_path) -> None:
    store = JsonFileSessionStore(tmp_path / "nope" / "session.json")
    assert await store.get("auth_token") is None
    await store.delete("auth_token")
    assert not store.path.exists()


def test_blank_default_tenant_is_rejected() -> None:
    with pytest.raises(ValueError):
        SessionState(default_tenant_id="")


@pytest.mark.asyncio
async def test_clear_during_hydration_does_not_restore_old_token() -> None:
    store = SlowStore({"auth_token": "old"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)

    reader = asyncio.create_task(state.get_access_token())
    await store.reading.wait()
    await state.clear_session()
    store.release.set()

    assert await reader is None
    assert state.current.access_token is None
    assert await state.get_access_token() is None


@pytest.mark.asyncio
async def test_set_during_hydration_wins_over_stored_value() -> None:
    store = SlowStore({"auth_token": "old"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)

    reader = asyncio.create_task(state.get_access_token())
    await store.reading.wait()
    store.release.set()
    await state.set_session(access_token="new")
    await reader

    assert state.current.access_token == "new"


@pytest.mark.asyncio
async def test_failed_store_delete_does_not_resurrect_cleared_fields() -> None:
    store = DeleteFailsStore({"auth_token": "old", "refresh_token": "r_old", "company_id": "c1"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)
    assert await state.get_access_token() == "old"

    await state.clear_session()

    snap = await state.snapshot()
    assert snap.access_token is None
    assert snap.refresh_token is None
    assert snap.company_id is None
    assert store.as_dict()["auth_token"] == "old"

    await state.set_session(access_token="fresh")
    assert await state.get_access_token() == "fresh"


@pytest.mark.asyncio
async def test_clearing_one_field_stops_its_hydration() -> None:
    store = DeleteFailsStore({"company_id": "c1"})
    state = SessionState(default_tenant_id="tenant_demo", store=store)

    await state.set_session(company_id=None)

    assert await state.get_company_id() is None
