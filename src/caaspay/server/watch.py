"""Configuration file watcher.

Polls the mtimes of ``api.yaml``, ``routes.yaml`` and ``credentials.yaml``
and calls the reload callback when any of them changes. Polling keeps it
working on container bind mounts and ConfigMap volumes, where inotify
events are unreliable.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

from caaspay.errors import ReloadFailure
from caaspay.store import API_FILE, CREDENTIALS_FILE, ROUTES_FILE

logger = logging.getLogger("caaspay.reload")

Stamp: TypeAlias = tuple[tuple[str, int, int], ...]


def config_stamp(directory: str | Path) -> Stamp:
    """(name, mtime_ns, size) for each config file; missing files stamp as zeros."""
    base = Path(directory)
    stamp: list[tuple[str, int, int]] = []
    for name in (API_FILE, ROUTES_FILE, CREDENTIALS_FILE):
        try:
            st = (base / name).stat()
        except OSError:
            stamp.append((name, 0, 0))
        else:
            stamp.append((name, st.st_mtime_ns, st.st_size))
    return tuple(stamp)


class ConfigWatcher:
    """Background thread that hot-reloads on configuration changes.

    Usage::

        watcher = ConfigWatcher("config", api.reload, interval=2.0)
        watcher.start()
        ...
        watcher.stop()

    ``start()`` is idempotent, so several lifespan startups in one process
    share a single watcher.
    """

    __slots__ = ("_directory", "_interval", "_lock", "_reload", "_stamp", "_stop", "_thread")

    def __init__(
        self,
        directory: str | Path,
        reload: Callable[[], object],
        *,
        interval: float = 2.0,
    ) -> None:
        self._directory = Path(directory)
        self._reload = reload
        self._interval = interval
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stamp: Stamp = ()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._stamp = config_stamp(self._directory)
            self._thread = threading.Thread(
                target=self._run, name="caaspay-config-watcher", daemon=True
            )
            self._thread.start()
            logger.info("watching %s every %gs", self._directory, self._interval)

    def stop(self) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        self._stop.set()
        if thread is not None:
            thread.join(timeout=self._interval + 1.0)

    def poll(self) -> bool:
        """Check once; reload if anything changed. Returns True if a reload was attempted."""
        stamp = config_stamp(self._directory)
        if stamp == self._stamp:
            return False
        self._stamp = stamp
        logger.info("configuration change detected in %s", self._directory)
        try:
            self._reload()
        except ReloadFailure:
            # Already logged by the coordinator; the previous snapshot stays
            pass
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.poll()
            except Exception:
                logger.exception("configuration watcher error")
