"""Autosaving, restorable shortlist selection persisted as a remote draft."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable

import pendulum
import structlog

from .adapters import DraftPersistence, SnapshotStore
from .core import classify_tier, is_contact_ready
from .errors import DraftSyncFailure, Notice, Notifier
from .schemas import Candidate, DraftSnapshot, DraftState, DraftStatus, JobSummary, ShortlistEntry
from .schemas.shortlist import EntrySource


@dataclass
class DraftStoreConfig:
    """Autosave timing and local snapshot freshness."""

    debounce_seconds: float = 2.0
    max_age_hours: float = 24


def entry_from_candidate(candidate: Candidate, source: EntrySource = "manual") -> ShortlistEntry:
    return ShortlistEntry(
        id=candidate.id,
        name=candidate.full_name,
        specialty=candidate.specialty,
        state=candidate.state,
        city=candidate.city,
        unified_score=candidate.unified_score,
        tier=classify_tier(candidate.unified_score),
        match_strength=candidate.match_strength,
        licenses=list(candidate.licenses),
        licenses_count=candidate.license_total,
        enrichment_tier=candidate.enrichment_tier,
        personal_email=candidate.personal_email,
        personal_mobile=candidate.personal_mobile,
        contact_ready=is_contact_ready(candidate),
        source=source,
    )


def _signature(snapshot: DraftSnapshot) -> str:
    ids = ",".join(entry.id for entry in snapshot.candidates)
    return f"{snapshot.job_id}|{snapshot.campaign_name}|{ids}"


class ShortlistDraftStore:
    """Owns the shortlist for one campaign session.

    Every mutation marks the draft dirty and schedules a debounced sync.
    :meth:`teardown` awaits a final flush so leaving the view never drops a
    write. Pass the store to each view explicitly; it is not a singleton.
    """

    def __init__(
        self,
        *,
        session_key: str,
        persistence: DraftPersistence,
        snapshots: SnapshotStore | None = None,
        config: DraftStoreConfig | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._state = DraftState(session_key=session_key)
        self._persistence = persistence
        self._snapshots = snapshots
        self._config = config or DraftStoreConfig()
        self._notifier = notifier
        self._revision = 0
        self._last_signature: str | None = None
        self._debounce_task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__).bind(session_key=session_key)

    # read access

    @property
    def state(self) -> DraftState:
        return self._state

    @property
    def status(self) -> DraftStatus:
        return self._state.status

    @property
    def is_dirty(self) -> bool:
        return self._state.is_dirty

    @property
    def last_saved(self) -> pendulum.DateTime | None:
        return self._state.last_saved

    @property
    def last_error(self) -> str | None:
        return self._state.last_error

    @property
    def job(self) -> JobSummary | None:
        return self._state.job

    @property
    def entries(self) -> list[ShortlistEntry]:
        return list(self._state.entries.values())

    def ids(self) -> set[str]:
        return set(self._state.entries)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._state.entries

    def __len__(self) -> int:
        return len(self._state.entries)

    # hydration

    async def hydrate(self) -> DraftStatus:
        """Restore from the remote draft, else from the local snapshot.

        A non-empty shortlist already held in memory is never replaced by an
        empty result.
        """
        remote: DraftSnapshot | None = None
        try:
            remote = await self._persistence.load(self._state.session_key)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("drafts.remote_load_failed", error=str(exc))
            self._notify(Notice(level="warning", message="Could not load saved draft; using local copy"))

        snapshot, source = remote, "remote"
        if snapshot is None or not snapshot.candidates:
            local = self._read_local()
            if local is not None and local.candidates:
                snapshot, source = local, "local"

        if snapshot is None or (not snapshot.candidates and self._state.entries):
            if snapshot is not None and snapshot.job and self._state.job is None:
                self._state.job = snapshot.job
            if self._state.status is DraftStatus.EMPTY and self._state.entries:
                self._state.status = DraftStatus.LOADED
            self._logger.info("drafts.hydrate_kept_current", entries=len(self._state.entries))
            return self._state.status

        self._state.entries = {entry.id: entry for entry in snapshot.candidates}
        self._state.job = snapshot.job or self._state.job
        self._state.campaign_name = snapshot.campaign_name or self._state.campaign_name
        self._state.last_saved = snapshot.saved_at_datetime()
        self._state.is_dirty = False
        self._state.status = DraftStatus.LOADED if self._state.entries else DraftStatus.EMPTY
        if source == "remote":
            self._last_signature = _signature(snapshot)
        self._logger.info("drafts.hydrated", source=source, entries=len(self._state.entries))
        return self._state.status

    def _read_local(self) -> DraftSnapshot | None:
        if self._snapshots is None:
            return None
        snapshot = self._snapshots.read(self._state.session_key)
        if snapshot is None:
            return None
        saved_at = snapshot.saved_at_datetime()
        if saved_at is not None:
            age_hours = (pendulum.now("UTC") - saved_at).total_hours()
            if age_hours >= self._config.max_age_hours:
                self._logger.info("drafts.local_snapshot_expired", age_hours=round(age_hours, 1))
                return None
        return snapshot

    # mutations

    def add(self, candidate: Candidate, *, source: EntrySource = "manual") -> bool:
        if candidate.id in self._state.entries:
            return False
        self._state.entries[candidate.id] = entry_from_candidate(candidate, source)
        self._touch()
        return True

    def add_many(self, candidates: Iterable[Candidate], *, source: EntrySource = "bulk") -> int:
        added = 0
        for candidate in candidates:
            if candidate.id in self._state.entries:
                continue
            self._state.entries[candidate.id] = entry_from_candidate(candidate, source)
            added += 1
        if added:
            self._touch()
        return added

    def remove(self, candidate_id: str) -> bool:
        if self._state.entries.pop(candidate_id, None) is None:
            return False
        self._touch()
        return True

    def clear(self) -> None:
        if not self._state.entries:
            return
        self._state.entries = {}
        self._touch()

    def set_job(self, job: JobSummary | None) -> None:
        if job == self._state.job:
            return
        self._state.job = job
        if job and not self._state.campaign_name:
            label = job.specialty or job.name or "Campaign"
            facility = job.facility or "Facility"
            self._state.campaign_name = f"{label} - {facility} - {pendulum.now().to_date_string()}"
        self._touch()

    def set_campaign_name(self, name: str) -> None:
        self._state.campaign_name = name
        self._touch()

    def _touch(self) -> None:
        self._revision += 1
        self._state.is_dirty = True
        self._state.status = DraftStatus.DIRTY
        self._schedule_sync()

    def _schedule_sync(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the change waits for the next explicit flush.
            return
        self._cancel_debounce()
        task = loop.create_task(self._debounced_sync())
        self._debounce_task = task
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _debounced_sync(self) -> None:
        await asyncio.sleep(self._config.debounce_seconds)
        self._debounce_task = None
        await self.flush()

    # sync

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None

    async def flush(self) -> bool:
        """Write the draft now; returns False when the remote write failed."""
        self._cancel_debounce()

        async with self._lock:
            if not self._state.is_dirty:
                return True

            revision = self._revision
            snapshot = self._state.snapshot()
            signature = _signature(snapshot)
            self._write_local(snapshot)

            if signature == self._last_signature:
                self._mark_saved(revision)
                return True

            self._state.status = DraftStatus.SAVING
            try:
                await self._persistence.save(snapshot)
            except Exception as exc:  # noqa: BLE001
                failure = DraftSyncFailure(str(exc))
                self._state.status = DraftStatus.DIRTY
                self._state.last_error = str(failure)
                self._logger.warning("drafts.sync_failed", error=str(exc), entries=len(snapshot.candidates))
                self._notify(Notice(level="error", message="Draft not saved; will retry", error=failure))
                return False

            self._last_signature = signature
            self._mark_saved(revision)
            self._logger.info("drafts.synced", entries=len(snapshot.candidates))
            return True

    def _mark_saved(self, revision: int) -> None:
        self._state.last_saved = pendulum.now("UTC")
        self._state.last_error = None
        if revision == self._revision:
            self._state.is_dirty = False
            self._state.status = DraftStatus.SAVED
        else:
            self._state.status = DraftStatus.DIRTY

    def _write_local(self, snapshot: DraftSnapshot) -> None:
        if self._snapshots is None:
            return
        try:
            self._snapshots.write(snapshot)
        except OSError as exc:
            self._logger.warning("drafts.local_write_failed", error=str(exc))

    async def discard(self) -> bool:
        """Start fresh: drop the selection, the local snapshot and the stored draft.

        The remote draft is overwritten with an empty one so the next
        :meth:`hydrate` restores nothing. Returns False when that write failed;
        the store then stays dirty and the next flush retries it.
        """
        self._cancel_debounce()
        async with self._lock:
            self._revision += 1
            self._state.entries = {}
            self._state.campaign_name = ""
            self._state.last_saved = None
            self._state.last_error = None
            self._state.is_dirty = False
            self._state.status = DraftStatus.EMPTY
            self._last_signature = None
            if self._snapshots is not None:
                try:
                    self._snapshots.delete(self._state.session_key)
                except OSError as exc:
                    self._logger.warning("drafts.local_delete_failed", error=str(exc))

            snapshot = self._state.snapshot()
            try:
                await self._persistence.save(snapshot)
            except Exception as exc:  # noqa: BLE001
                failure = DraftSyncFailure(str(exc))
                self._state.is_dirty = True
                self._state.status = DraftStatus.DIRTY
                self._state.last_error = str(failure)
                self._logger.warning("drafts.discard_sync_failed", error=str(exc))
                self._notify(
                    Notice(level="error", message="Draft discarded locally; remote copy not cleared", error=failure)
                )
                return False

            self._last_signature = _signature(snapshot)
            self._logger.info("drafts.discarded")
            return True

    # lifecycle

    async def teardown(self) -> bool:
        """Flush any unsaved change before the owning view goes away."""
        self._cancel_debounce()
        pending_tasks = [task for task in self._background if not task.done()]
        if pending_tasks:
            await asyncio.gather(*pending_tasks, return_exceptions=True)
        return await self.flush()

    @asynccontextmanager
    async def mounted(self) -> AsyncIterator["ShortlistDraftStore"]:
        await self.hydrate()
        try:
            yield self
        finally:
            await self.teardown()

    def _notify(self, notice: Notice) -> None:
        if self._notifier is not None:
            self._notifier(notice)
