from __future__ import annotations

import asyncio

import pendulum
import pytest

from recruitops.adapters import FileSnapshotStore, InMemoryDraftPersistence, MemorySnapshotStore
from recruitops.drafts import DraftStoreConfig, ShortlistDraftStore
from recruitops.errors import DraftSyncFailure, Notice
from recruitops.schemas import Candidate, DraftSnapshot, DraftStatus, JobSummary, ShortlistEntry

SESSION = "campaign-J-1"


class FlakyPersistence(InMemoryDraftPersistence):
    def __init__(self, *, fail_saves: int = 0, fail_load: bool = False):
        super().__init__()
        self.fail_saves = fail_saves
        self.fail_load = fail_load
        self.attempts = 0

    async def load(self, session_key):
        if self.fail_load:
            raise ConnectionError("drafts table unreachable")
        return await super().load(session_key)

    async def save(self, snapshot):
        self.attempts += 1
        if self.fail_saves:
            self.fail_saves -= 1
            raise ConnectionError("drafts table unreachable")
        await super().save(snapshot)


def build_store(persistence=None, snapshots=None, *, debounce: float = 60.0, notices=None) -> ShortlistDraftStore:
    return ShortlistDraftStore(
        session_key=SESSION,
        persistence=persistence if persistence is not None else InMemoryDraftPersistence(),
        snapshots=snapshots,
        config=DraftStoreConfig(debounce_seconds=debounce),
        notifier=notices.append if notices is not None else None,
    )


def candidate(candidate_id: str, **kwargs) -> Candidate:
    return Candidate(id=candidate_id, first_name="Cand", last_name=candidate_id, unified_score="A", **kwargs)


def snapshot_with(*ids: str, saved_at: pendulum.DateTime | None = None) -> DraftSnapshot:
    return DraftSnapshot(
        session_key=SESSION,
        job_id="J-1",
        job=JobSummary(id="J-1", state="TX"),
        campaign_name="ICU - Mercy - 2026-10-17",
        candidates=[ShortlistEntry(id=candidate_id) for candidate_id in ids],
        saved_at=(saved_at or pendulum.now("UTC")).to_iso8601_string(),
    )


@pytest.mark.asyncio
async def test_teardown_flushes_pending_change_before_returning():
    persistence = InMemoryDraftPersistence()
    store = build_store(persistence)

    store.add(candidate("a"))
    assert store.status is DraftStatus.DIRTY
    assert persistence.save_count == 0

    assert await store.teardown() is True
    assert persistence.save_count == 1
    saved = await persistence.load(SESSION)
    assert [entry.id for entry in saved.candidates] == ["a"]
    assert store.status is DraftStatus.SAVED
    assert store.is_dirty is False


@pytest.mark.asyncio
async def test_debounced_sync_coalesces_mutations():
    persistence = InMemoryDraftPersistence()
    store = build_store(persistence, debounce=0.01)

    store.add(candidate("a"))
    store.add(candidate("b"))
    store.remove("a")
    await asyncio.sleep(0.05)

    assert persistence.save_count == 1
    saved = await persistence.load(SESSION)
    assert [entry.id for entry in saved.candidates] == ["b"]
    assert store.status is DraftStatus.SAVED
    assert store.last_saved is not None


@pytest.mark.asyncio
async def test_unchanged_selection_is_not_rewritten():
    persistence = InMemoryDraftPersistence()
    store = build_store(persistence)

    store.add(candidate("a"))
    await store.flush()
    store.add(candidate("b"))
    store.remove("b")
    await store.flush()

    assert persistence.save_count == 1
    assert store.status is DraftStatus.SAVED


@pytest.mark.asyncio
async def test_add_is_idempotent_and_entries_capture_candidate_fields():
    store = build_store()

    assert store.add(candidate("a", personal_mobile="+1 555 0100", match_strength=91)) is True
    assert store.add(candidate("a")) is False
    assert store.add_many([candidate("a"), candidate("b")]) == 1

    entry = store.entries[0]
    assert entry.name == "Cand a"
    assert entry.tier == 1
    assert entry.contact_ready is True
    assert entry.source == "manual"
    assert store.entries[1].source == "bulk"
    assert len(store) == 2
    assert "b" in store
    await store.teardown()


@pytest.mark.asyncio
async def test_sync_failure_keeps_state_dirty_and_retries():
    persistence = FlakyPersistence(fail_saves=1)
    notices: list[Notice] = []
    store = build_store(persistence, notices=notices)

    store.add(candidate("a"))
    assert await store.flush() is False
    assert store.status is DraftStatus.DIRTY
    assert store.is_dirty is True
    assert store.last_error
    assert "a" in store
    assert notices[-1].level == "error"
    assert isinstance(notices[-1].error, DraftSyncFailure)

    assert await store.flush() is True
    assert persistence.attempts == 2
    assert store.status is DraftStatus.SAVED
    assert store.last_error is None


@pytest.mark.asyncio
async def test_hydrate_prefers_remote_draft():
    persistence = InMemoryDraftPersistence()
    await persistence.save(snapshot_with("r1", "r2"))
    snapshots = MemorySnapshotStore()
    snapshots.write(snapshot_with("local"))
    store = build_store(persistence, snapshots)

    status = await store.hydrate()

    assert status is DraftStatus.LOADED
    assert [entry.id for entry in store.entries] == ["r1", "r2"]
    assert store.job.id == "J-1"
    assert store.is_dirty is False


@pytest.mark.asyncio
async def test_hydrate_falls_back_to_local_snapshot_when_remote_fails():
    persistence = FlakyPersistence(fail_load=True)
    snapshots = MemorySnapshotStore()
    snapshots.write(snapshot_with("local"))
    notices: list[Notice] = []
    store = build_store(persistence, snapshots, notices=notices)

    status = await store.hydrate()

    assert status is DraftStatus.LOADED
    assert [entry.id for entry in store.entries] == ["local"]
    assert store.is_dirty is False
    assert notices[0].level == "warning"


@pytest.mark.asyncio
async def test_hydrate_ignores_expired_local_snapshot():
    snapshots = MemorySnapshotStore()
    snapshots.write(snapshot_with("stale", saved_at=pendulum.now("UTC").subtract(hours=30)))
    store = build_store(InMemoryDraftPersistence(), snapshots)

    status = await store.hydrate()

    assert status is DraftStatus.EMPTY
    assert store.entries == []


@pytest.mark.asyncio
async def test_empty_result_never_overwrites_current_selection():
    persistence = InMemoryDraftPersistence()
    await persistence.save(snapshot_with())
    store = build_store(persistence)
    store.add(candidate("keep"))

    await store.hydrate()

    assert [entry.id for entry in store.entries] == ["keep"]
    assert store.is_dirty is True
    await store.teardown()


@pytest.mark.asyncio
async def test_flush_writes_local_snapshot_even_when_remote_fails(tmp_path):
    snapshots = FileSnapshotStore(tmp_path)
    store = build_store(FlakyPersistence(fail_saves=5), snapshots)

    store.add(candidate("a"))
    await store.flush()

    restored = snapshots.read(SESSION)
    assert restored is not None
    assert [entry.id for entry in restored.candidates] == ["a"]


@pytest.mark.asyncio
async def test_set_job_derives_campaign_name():
    store = build_store()
    store.set_job(JobSummary(id="J-1", specialty="ICU", facility="Mercy", state="TX"))

    assert store.state.campaign_name.startswith("ICU - Mercy - ")
    assert store.state.job_id == "J-1"

    store.set_campaign_name("Custom")
    store.set_job(JobSummary(id="J-2"))
    assert store.state.campaign_name == "Custom"
    await store.teardown()


@pytest.mark.asyncio
async def test_mounted_context_hydrates_and_flushes():
    persistence = InMemoryDraftPersistence()
    await persistence.save(snapshot_with("r1"))
    store = build_store(persistence)

    async with store.mounted() as mounted:
        assert [entry.id for entry in mounted.entries] == ["r1"]
        mounted.add(candidate("new"))

    saved = await persistence.load(SESSION)
    assert [entry.id for entry in saved.candidates] == ["r1", "new"]


@pytest.mark.asyncio
async def test_mount_survives_corrupt_local_snapshot(tmp_path):
    (tmp_path / f"{SESSION}.json").write_bytes(b"\xff\xfe\x00garbage")
    store = build_store(InMemoryDraftPersistence(), FileSnapshotStore(tmp_path))

    async with store.mounted() as mounted:
        assert mounted.status is DraftStatus.EMPTY
        assert mounted.entries == []


@pytest.mark.asyncio
async def test_hydrate_tolerates_unparseable_saved_at():
    persistence = InMemoryDraftPersistence()
    broken = snapshot_with("r1").model_copy(update={"saved_at": "yesterday-ish"})
    await persistence.save(broken)
    store = build_store(persistence)

    status = await store.hydrate()

    assert status is DraftStatus.LOADED
    assert [entry.id for entry in store.entries] == ["r1"]
    assert store.last_saved is None


@pytest.mark.asyncio
async def test_discard_starts_fresh_and_nothing_rehydrates():
    persistence = InMemoryDraftPersistence()
    snapshots = MemorySnapshotStore()
    await persistence.save(snapshot_with("r1", "r2"))
    snapshots.write(snapshot_with("r1", "r2"))
    store = build_store(persistence, snapshots)
    await store.hydrate()

    assert await store.discard() is True

    assert store.entries == []
    assert store.status is DraftStatus.EMPTY
    assert store.is_dirty is False
    assert snapshots.read(SESSION) is None

    fresh = build_store(persistence, snapshots)
    assert await fresh.hydrate() is DraftStatus.EMPTY
    assert fresh.entries == []

    store.add(candidate("a"))
    assert await store.flush() is True
    saved = await persistence.load(SESSION)
    assert [entry.id for entry in saved.candidates] == ["a"]


@pytest.mark.asyncio
async def test_discard_keeps_store_dirty_when_remote_clear_fails():
    persistence = FlakyPersistence(fail_saves=1)
    notices: list[Notice] = []
    store = build_store(persistence, notices=notices)
    store.add(candidate("a"))

    assert await store.discard() is False
    assert store.entries == []
    assert store.status is DraftStatus.DIRTY
    assert isinstance(notices[-1].error, DraftSyncFailure)

    assert await store.flush() is True
    saved = await persistence.load(SESSION)
    assert saved.candidates == []


@pytest.mark.asyncio
async def test_setting_the_same_job_is_not_a_change():
    persistence = InMemoryDraftPersistence()
    store = build_store(persistence)
    job = JobSummary(id="J-1", specialty="ICU", facility="Mercy", state="TX")
    store.set_job(job)
    await store.flush()
    assert store.status is DraftStatus.SAVED

    store.set_job(JobSummary(id="J-1", specialty="ICU", facility="Mercy", state="TX"))

    assert store.status is DraftStatus.SAVED
    assert store.is_dirty is False
    assert persistence.save_count == 1
