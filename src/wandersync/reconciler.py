"""Offline-first reconciler for the shared trip document.

The reconciler is the only writer of the trip document. It keeps three
copies converging toward one value: the local store, the in-memory
document, and the remote copy behind a :class:`RemoteChannel`.

Usage::

    async with Reconciler(config, store, channel) as reconciler:
        doc = reconciler.document
        reconciler.on_local_edit(doc.model_copy(update={"name": "Lisbon"}))
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from wandersync._constants import TRIP_STORAGE_KEY
from wandersync.channels import RemoteChannel, Unsubscribe
from wandersync.config import SyncConfig
from wandersync.exceptions import MalformedRemoteDataError, StorageUnavailableError, SyncTransportError
from wandersync.models._base import utc_now_iso
from wandersync.models.trip import TripDocument
from wandersync.state.policy import is_newer, reconcile
from wandersync.state.sync_state import SyncState, SyncStatus
from wandersync.storage import LocalStore

_logger = logging.getLogger(__name__)

DocumentListener = Callable[[TripDocument], None]


class PushResult(StrEnum):
    SUCCESS = "success"
    PENDING = "pending"


class Reconciler:
    """Drive local edits, pushes, pulls and remote snapshots for one trip.

    Parameters
    ----------
    config : SyncConfig
        Sync configuration (debounce delay, document id).
    store : LocalStore
        Durable local storage. Storage failures propagate as
        :class:`~wandersync.exceptions.StorageUnavailableError`.
    channel : RemoteChannel
        The remote strategy for this deployment.
    clock : callable
        Returns the current time as an ISO-8601 string.
    """

    def __init__(
        self,
        config: SyncConfig,
        store: LocalStore,
        channel: RemoteChannel,
        *,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._config = config
        self._store = store
        self._channel = channel
        self._clock = clock
        self._state = SyncState()
        self._document: TripDocument | None = None
        self._has_local = False
        self._channel_open = False
        self._unsubscribe: Unsubscribe | None = None
        self._debounce: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task[PushResult]] = set()
        self._listeners: list[DocumentListener] = []
        self._background_failure: StorageUnavailableError | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Reconciler:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        if self._channel_open:
            self._channel_open = False
            await self._channel.close()
        if exc_type is None:
            self._raise_background_failure()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def document(self) -> TripDocument:
        if self._document is None:
            return self.load_initial()
        return self._document

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def status(self) -> SyncStatus:
        return self._state.status

    @property
    def has_scheduled_push(self) -> bool:
        return self._debounce is not None

    def add_listener(self, listener: DocumentListener) -> Callable[[], None]:
        """Call *listener* with the active document whenever it changes."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        doc = self._document
        if doc is None:
            return
        for listener in list(self._listeners):
            try:
                listener(doc)
            except Exception:
                _logger.exception("Document listener failed")

    # ------------------------------------------------------------------
    # Local side
    # ------------------------------------------------------------------

    def load_initial(self) -> TripDocument:
        """Read the stored document, falling back to the default document.

        Never touches the network, so the caller always has something to
        render immediately.
        """
        raw = self._store.get_item(TRIP_STORAGE_KEY)
        doc: TripDocument | None = None
        if raw:
            try:
                doc = TripDocument.from_wire(json.loads(raw))
            except (json.JSONDecodeError, MalformedRemoteDataError):
                _logger.warning("Stored trip document is unreadable; starting from defaults", exc_info=True)

        self._has_local = doc is not None
        self._document = doc if doc is not None else TripDocument.default(self._config.document_id)

        online = self._state.online
        self._state = SyncState.load(self._store)
        self._state.online = online
        self._state.last_synced_at = self._document.last_synced
        _logger.debug(
            "Loaded trip id=%s stored=%s pending=%s",
            self._document.id,
            self._has_local,
            self._state.pending_sync,
        )
        return self._document

    def _write_local(self, doc: TripDocument) -> None:
        self._store.set_item(TRIP_STORAGE_KEY, json.dumps(doc.to_wire(), separators=(",", ":")))

    def _set_document(self, doc: TripDocument) -> None:
        self._write_local(doc)
        self._document = doc
        self._has_local = True
        self._state.last_synced_at = doc.last_synced
        self._notify()

    def on_local_edit(self, doc: TripDocument) -> TripDocument:
        """Stamp, persist and schedule a push of an edited document.

        The store write happens before this returns, so a reload right
        after an edit always observes it. The push is debounced: a new edit
        replaces any push still waiting for its quiet period. Must be called
        from the event loop thread.

        Raises
        ------
        StorageUnavailableError
            The store rejected this write, or a debounced push that ran in
            the background since the previous call failed to persist the
            pending flag.
        """
        self._raise_background_failure()
        stamped = doc.stamped(self._clock())
        self._set_document(stamped)

        if not self._state.online:
            self._state.set_pending(self._store, True)
            return stamped

        self._schedule_push(stamped)
        return stamped

    def _schedule_push(self, doc: TripDocument) -> None:
        self._cancel_debounce()
        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(self._config.push_debounce, self._fire_push, doc)

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _fire_push(self, doc: TripDocument) -> None:
        self._debounce = None
        task = asyncio.ensure_future(self.push(doc))
        self._inflight.add(task)
        task.add_done_callback(self._on_push_done)

    def _on_push_done(self, task: asyncio.Task[PushResult]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        _logger.error("Debounced push of trip failed: %s", exc, exc_info=exc)
        if isinstance(exc, StorageUnavailableError) and self._background_failure is None:
            self._background_failure = exc

    def _raise_background_failure(self) -> None:
        exc = self._background_failure
        if exc is not None:
            self._background_failure = None
            raise exc

    # ------------------------------------------------------------------
    # Remote side
    # ------------------------------------------------------------------

    async def push(self, doc: TripDocument) -> PushResult:
        """Send the full document; transport failures only flip the pending flag."""
        self._state.syncing = True
        try:
            await self._channel.send(doc)
        except SyncTransportError as exc:
            _logger.warning("Push of trip %s failed, changes pending sync: %s", doc.id, exc)
            self._state.set_pending(self._store, True)
            return PushResult.PENDING
        finally:
            self._state.syncing = False

        _logger.debug("Pushed trip id=%s lastSynced=%s", doc.id, doc.last_synced)
        self._state.set_pending(self._store, False)
        return PushResult.SUCCESS

    async def pull(self) -> TripDocument | None:
        """Fetch the remote copy out-of-band; ``None`` on any transport error."""
        try:
            return await self._channel.pull()
        except (SyncTransportError, MalformedRemoteDataError) as exc:
            _logger.warning("Pull failed, keeping local copy: %s", exc)
            return None

    @staticmethod
    def reconcile(local: TripDocument | None, remote: TripDocument | None) -> TripDocument | None:
        return reconcile(local, remote)

    def _converge(self, remote: TripDocument | None) -> bool:
        """Apply the reconcile decision; return whether local should be pushed."""
        local = self._document if self._has_local else None
        chosen = reconcile(local, remote)
        if chosen is None:
            return False

        if remote is not None and chosen is remote and remote != local:
            self._cancel_debounce()
            self._set_document(remote)
            self._state.set_pending(self._store, False)
            _logger.info("Adopted remote trip id=%s lastSynced=%s", remote.id, remote.last_synced)
            return False

        if local is None:
            return False
        if remote is not None and remote == local:
            self._state.set_pending(self._store, False)
            return False

        if self._state.pending_sync:
            return True
        if remote is None or local.last_synced is None:
            return False
        return remote.last_synced is None or is_newer(local.last_synced, remote.last_synced) is True

    def on_remote_snapshot(self, remote: TripDocument) -> None:
        """Handle a full-document snapshot delivered by a subscription.

        An echo of our own push confirms it; a newer copy is adopted; an
        older one is ignored and overwritten by the next debounced push.
        """
        if self._converge(remote) and self._state.online and self._document is not None:
            self._schedule_push(self._document)

    async def _ensure_channel_open(self) -> bool:
        # Subscribe first: a retained snapshot may be delivered as soon as the channel connects.
        if self._unsubscribe is None:
            self._unsubscribe = self._channel.subscribe(self.on_remote_snapshot)
        if not self._channel_open:
            try:
                await self._channel.open()
            except SyncTransportError as exc:
                _logger.warning("Remote channel unavailable, working locally: %s", exc)
                return False
            self._channel_open = True
        return True

    async def start(self) -> TripDocument:
        """Startup reconciliation: load, pull, decide, resume pending pushes, subscribe."""
        if self._document is None:
            self.load_initial()
        if not self._state.online or not await self._ensure_channel_open():
            return self.document

        remote = await self.pull()
        if self._converge(remote):
            await self.push(self.document)
        return self.document

    async def sync_now(self) -> TripDocument:
        """Manual sync: pull, reconcile and push when the local copy should win."""
        return await self.start()

    async def set_online(self, online: bool) -> None:
        """Record a connectivity change; reconnecting resumes pending pushes."""
        was_online = self._state.online
        self._state.online = online
        if not online:
            if self._debounce is not None:
                self._cancel_debounce()
                self._state.set_pending(self._store, True)
            return
        if was_online:
            return
        _logger.info("Back online (pending=%s)", self._state.pending_sync)
        await self.start()

    def close(self) -> None:
        """Cancel the waiting debounced push and stop receiving snapshots.

        A push that has already been dispatched is left to finish.
        """
        self._cancel_debounce()
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
