"""Tests for snapshot loading, merging and write-through persistence."""

import json

import pytest

from bsi.core.exceptions import PersistenceFailure, PersistenceWarning
from bsi.core.rbac import Role
from bsi.main import create_backend
from bsi.services.audit_service import AUDIT_LOG_LIMIT
from bsi.services.persistence import MemoryPersister
from bsi.services.store import DEFAULT_TABLES, SCHEMA_TAG, RecordStore


class FailingPersister(MemoryPersister):
    """Loads normally but refuses every save."""

    async def save(self, blob: str) -> None:
        raise PersistenceFailure("disk full")


class UnreadablePersister(MemoryPersister):
    async def load(self) -> str | None:
        raise PersistenceFailure("permission denied")


@pytest.mark.asyncio
async def test_empty_persister_gives_default_schema():
    """With no snapshot the store starts with the empty default tables."""
    store = await RecordStore.open(MemoryPersister())
    assert set(store.tables) == set(DEFAULT_TABLES)
    assert store.record_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "blob",
    ["{not json", "[1, 2, 3]", '"just a string"', "", "[" * 200000],
    ids=["garbage", "list-root", "string-root", "empty", "deeply-nested"],
)
async def test_corrupt_snapshot_resets_to_default(blob):
    """Corrupt content is replaced by the default schema without raising."""
    persister = MemoryPersister(initial=blob)
    store = await RecordStore.open(persister)

    assert set(store.tables) == set(DEFAULT_TABLES)
    assert store.record_count == 0
    # The corrupt blob has been overwritten with the clean schema
    assert json.loads(persister.blobs["FUTUREPATH_DB"])["users"] == []


@pytest.mark.asyncio
async def test_unreadable_snapshot_resets_to_default():
    """A persister that cannot read falls back to the default schema."""
    store = await RecordStore.open(UnreadablePersister())
    assert set(store.tables) == set(DEFAULT_TABLES)


@pytest.mark.asyncio
async def test_snapshot_merges_over_default_schema():
    """Old snapshots keep their rows and gain any missing default tables."""
    old = {"users": [{"id": "USR-000001", "email": "a@b.c"}], "visions": [{"userId": "U1"}]}
    store = await RecordStore.open(MemoryPersister(initial=json.dumps(old)))

    assert store.tables["users"][0]["email"] == "a@b.c"
    assert store.tables["visions"] == [{"userId": "U1"}]
    # Tables missing from the old snapshot are filled in
    assert store.tables["skill_audits"] == []


@pytest.mark.asyncio
async def test_malformed_tables_and_rows_are_dropped():
    """Non-list tables and non-object rows are discarded on load."""
    blob = json.dumps({"profiles": "oops", "plans": [{"userId": "U1"}, 7, None]})
    store = await RecordStore.open(MemoryPersister(initial=blob))

    assert store.tables["profiles"] == []
    assert store.tables["plans"] == [{"userId": "U1"}]


@pytest.mark.asyncio
async def test_oversized_audit_log_is_trimmed_on_load():
    """A snapshot holding 150 audit rows loads with only the newest 100."""
    logs = [{"id": f"e{i}", "userId": "U1", "action": "LOGIN", "status": "SUCCESS"} for i in range(150)]
    store = await RecordStore.open(MemoryPersister(initial=json.dumps({"logs": logs})))

    assert len(store.table("logs")) == AUDIT_LOG_LIMIT
    assert store.table("logs")[0]["id"] == "e0"
    assert store.table("logs")[-1]["id"] == f"e{AUDIT_LOG_LIMIT - 1}"


@pytest.mark.asyncio
async def test_every_write_persists_full_snapshot(backend, persister):
    """A write saves every table, the log and the schema tag."""
    await backend.write("reflections", {"userId": "U1", "mood": "up"}, Role.MEMBER)

    saved = json.loads(persister.blobs["FUTUREPATH_DB"])
    assert saved[SCHEMA_TAG] == "1.0.8-PROD"
    assert saved["reflections"][0]["mood"] == "up"
    assert saved["logs"][0]["action"] == "WRITE_reflections"


@pytest.mark.asyncio
async def test_state_survives_reload(test_settings, persister):
    """A second backend on the same persister sees the first one's data."""
    first = await create_backend(test_settings, persister)
    user = await first.register("Ada", "ada@example.com", "pw")
    await first.write("visions", {"userId": user.id, "statement": "lead"}, Role.MEMBER)

    second = await create_backend(test_settings, persister)
    again = await second.authenticate("ada@example.com", "pw")
    assert again.id == user.id
    assert await second.read_own("visions", user.id, Role.MEMBER)


@pytest.mark.asyncio
async def test_save_failure_warns_without_rollback(test_settings):
    """A failed save warns but keeps the write in memory."""
    backend = await create_backend(test_settings, FailingPersister())

    with pytest.warns(PersistenceWarning, match="disk full"):
        assert await backend.write("plans", {"userId": "U1"}, Role.MEMBER) is True

    assert len(await backend.read_own("plans", "U1", Role.MEMBER)) == 1
    assert backend.store.last_persist_error == "disk full"
    assert backend.system_health().persisted is False


@pytest.mark.asyncio
async def test_reset_clears_everything(backend, persister):
    """reset() empties the store and saves the empty schema."""
    await backend.federated_auth()
    await backend.store.reset()

    assert backend.store.record_count == 0
    assert json.loads(persister.blobs["FUTUREPATH_DB"])["users"] == []
