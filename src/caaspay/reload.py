"""ReloadCoordinator — atomic publication of new configuration snapshots.

A reload builds a complete snapshot off to the side, validates it (parsing,
route conflicts, handler binding), and only then swaps the single
current-snapshot reference. Readers never lock: a request takes whatever
reference is current when it starts and keeps it until it finishes, so no
request ever observes a half-updated route table or credential set.

Thread safety:
    Publishing is serialized by ``_publish_lock``. Reading ``current`` is a
    single attribute load, atomic under both the GIL and free-threading.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from caaspay.errors import ConfigError, ReloadFailure
from caaspay.snapshot import Snapshot
from caaspay.store import ConfigSources, ConfigStore

logger = logging.getLogger("caaspay.reload")


@dataclass(frozen=True, slots=True)
class Applied:
    """Result of a successful reload."""

    version: int
    previous_version: int


class ReloadCoordinator:
    """Owns the current snapshot and the only way to replace it.

    Usage::

        coordinator = ReloadCoordinator(
            store, validate=lambda snapshot: handlers.check_bound(snapshot.routes)
        )
        coordinator.initialize(ConfigSources.from_dir("config"))   # fatal on error

        with coordinator.lease() as snapshot:
            snapshot.routes.match("GET", "/accounts/42")

        coordinator.reload(ConfigSources.from_dir("config"))      # ReloadFailure on error
    """

    __slots__ = ("_current", "_next_version", "_publish_lock", "_store", "_validate")

    def __init__(
        self,
        store: ConfigStore,
        *,
        validate: Callable[[Snapshot], None] | None = None,
    ) -> None:
        self._store = store
        self._validate = validate
        self._publish_lock = threading.Lock()
        self._current: Snapshot | None = None
        self._next_version = 1

    # -- Reading --

    @property
    def current(self) -> Snapshot:
        """The snapshot new requests are served from."""
        snapshot = self._current
        if snapshot is None:
            msg = "No configuration loaded. Call initialize() before serving requests."
            raise LookupError(msg)
        return snapshot

    @property
    def version(self) -> int:
        """Version of the current snapshot (0 before initialization)."""
        snapshot = self._current
        return snapshot.version if snapshot is not None else 0

    @contextmanager
    def lease(self) -> Iterator[Snapshot]:
        """Pin the current snapshot for the duration of one request.

        The caller's reference keeps the snapshot alive after a newer one is
        published; it is retired when the last lease ends.
        """
        snapshot = self.current
        yield snapshot

    # -- Publishing --

    def initialize(self, sources: ConfigSources) -> Snapshot:
        """Load and publish the first snapshot. Errors propagate unwrapped."""
        with self._publish_lock:
            snapshot = self._build(sources)
            self._publish(snapshot)
            return snapshot

    def reload(self, sources: ConfigSources) -> Applied:
        """Build, validate and publish a new snapshot.

        Raises ``ReloadFailure`` (wrapping the ``ConfigError`` or
        ``RouteConflict``) if anything is invalid; the current snapshot is
        then left exactly as it was.
        """
        with self._publish_lock:
            previous = self.current
            try:
                snapshot = self._build(sources)
            except ConfigError as exc:
                logger.error(
                    "reload rejected, keeping version %d: %s", previous.version, exc
                )
                raise ReloadFailure(exc, previous.version) from exc
            self._publish(snapshot)
            return Applied(version=snapshot.version, previous_version=previous.version)

    def _build(self, sources: ConfigSources) -> Snapshot:
        snapshot = self._store.load(sources, version=self._next_version)
        if self._validate is not None:
            self._validate(snapshot)
        return snapshot

    def _publish(self, snapshot: Snapshot) -> None:
        """Swap the reference. MUST only be called while holding _publish_lock."""
        previous = self._current
        self._current = snapshot
        self._next_version = snapshot.version + 1
        weakref.finalize(snapshot, _log_retired, snapshot.version)
        if previous is None:
            logger.info("configuration version %d loaded (%s)", snapshot.version, repr(snapshot))
        else:
            logger.info(
                "configuration version %d published, replacing %d (%s)",
                snapshot.version,
                previous.version,
                repr(snapshot),
            )


def _log_retired(version: int) -> None:
    logger.debug("configuration version %d retired", version)
