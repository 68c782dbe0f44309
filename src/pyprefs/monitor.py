"""Background change detection for preference stores.

A monitor polls a cheap signature of the watched store (file status or the
registry key's last-write time) on a daemon thread. A change opens a quiet
window of ``debounce`` seconds; every further change restarts it, and once
the signature has been stable for the whole window a single notification is
dispatched to the registered listeners.

Files are compared by ``(st_mtime_ns, st_size, st_ino)``. On a filesystem with
coarse timestamps, two rewrites of the same size within one timestamp tick
look identical and the second one is missed. The defaults (0.5 s poll, 0.25 s
debounce) are tuned for human-paced edits, not for such bursts.

Listeners run on the watcher thread, one after another. They must only hand
the notification over to the consumer's thread, e.g. through
:class:`ChangeSignal` or :func:`threadsafe_listener`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import os
import threading
import time
from collections.abc import Callable, Hashable
from pathlib import Path
from typing import Any

from pyprefs.exceptions import PrefsError
from pyprefs.models import MonitorState, SuppressionState
from pyprefs.readers.registry import LastWriteProbe, winreg_last_write

_logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeSuppressor:
    """Single-slot suppression of the next change notification.

    ``arm()`` moves the slot to :attr:`SuppressionState.ARMED`. The next
    ``consume()`` returns ``True`` exactly once and moves it back to
    :attr:`SuppressionState.CONSUMED`. Arming twice still suppresses a single
    notification.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = SuppressionState.CONSUMED

    @property
    def state(self) -> SuppressionState:
        with self._lock:
            return self._state

    def arm(self) -> None:
        with self._lock:
            self._state = SuppressionState.ARMED

    def reset(self) -> None:
        with self._lock:
            self._state = SuppressionState.CONSUMED

    def consume(self) -> bool:
        """Return ``True`` if the current notification must be swallowed."""
        with self._lock:
            if self._state is SuppressionState.ARMED:
                self._state = SuppressionState.CONSUMED
                return True
            return False


class ChangeSignal:
    """Thread-safe dirty flag between the watcher and a polling consumer.

    Register :meth:`set` as a listener and call :meth:`consume` once per
    update tick on the consumer's thread. Any number of notifications between
    two ticks collapse into one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._dirty = False

    @property
    def is_set(self) -> bool:
        with self._lock:
            return self._dirty

    def set(self) -> None:
        with self._lock:
            self._dirty = True

    def consume(self) -> bool:
        """Clear the flag and return whether it was set."""
        with self._lock:
            dirty = self._dirty
            self._dirty = False
            return dirty


def threadsafe_listener(loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> Listener:
    """Wrap *callback* so it runs on *loop* instead of the watcher thread."""

    def _listener() -> None:
        loop.call_soon_threadsafe(callback)

    return _listener


class ChangeMonitor(abc.ABC):
    """Base class for polling change monitors."""

    def __init__(
        self,
        *,
        poll_interval: float = 0.5,
        debounce: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._poll_interval = poll_interval
        self._debounce = debounce
        self._clock = clock
        self._suppressor = ChangeSuppressor()
        self._listeners: list[Listener] = []
        self._listeners_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = MonitorState.IDLE
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @abc.abstractmethod
    def _signature(self) -> Hashable:
        """Return a value that changes whenever the watched store changes.

        Raises :class:`OSError` or :class:`~pyprefs.exceptions.PrefsError`
        when the store cannot be watched at all.
        """

    @abc.abstractmethod
    def describe(self) -> str:
        """Human-readable name of the watched resource, for logs."""

    @property
    def state(self) -> MonitorState:
        with self._state_lock:
            return self._state

    @property
    def suppression_state(self) -> SuppressionState:
        return self._suppressor.state

    def is_monitoring(self) -> bool:
        return self.state is MonitorState.WATCHING

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    def ignore_next_change(self) -> None:
        """Swallow the next change notification, then resume normal delivery."""
        self._suppressor.arm()

    def start_monitoring(self) -> None:
        """Start watching. No-op when already watching.

        If the store cannot be watched the monitor stays idle and a warning
        is logged; nothing is raised.
        """
        with self._state_lock:
            if self._state is MonitorState.WATCHING:
                return
            try:
                baseline = self._signature()
            except (OSError, PrefsError) as exc:
                _logger.warning("Cannot monitor %s: %s", self.describe(), exc)
                return

            # Writes issued before watching started are part of the baseline.
            self._suppressor.reset()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event, baseline),
                name=f"pyprefs-monitor[{self.describe()}]",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = MonitorState.WATCHING
            thread.start()
            _logger.debug("Monitoring started for %s", self.describe())

    def stop_monitoring(self) -> None:
        """Stop watching and wait for the watcher thread to exit.

        No listener is invoked after this returns. Called from a listener on
        the watcher thread, it only signals the thread to stop.
        """
        with self._state_lock:
            stop_event = self._stop_event
            thread = self._thread
            self._stop_event = None
            self._thread = None
            self._state = MonitorState.IDLE

        if stop_event is None:
            return
        stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        _logger.debug("Monitoring stopped for %s", self.describe())

    def _run(self, stop_event: threading.Event, baseline: Hashable) -> None:
        last = baseline
        changed_at: float | None = None
        while not stop_event.wait(self._poll_interval):
            try:
                current = self._signature()
            except (OSError, PrefsError):
                _logger.debug("Polling %s failed", self.describe(), exc_info=True)
                continue

            if current != last:
                last = current
                changed_at = self._clock()
                continue

            if changed_at is not None and self._clock() - changed_at >= self._debounce:
                changed_at = None
                if stop_event.is_set():
                    break
                self._dispatch(stop_event)

    def _dispatch(self, stop_event: threading.Event) -> None:
        if self._suppressor.consume():
            _logger.debug("Ignoring self-inflicted change of %s", self.describe())
            return

        with self._listeners_lock:
            listeners = list(self._listeners)
        _logger.debug("Change detected in %s, notifying %d listener(s)", self.describe(), len(listeners))
        for listener in listeners:
            # A listener may have stopped the monitor.
            if stop_event.is_set():
                break
            try:
                listener()
            except Exception:
                _logger.warning("Change listener failed", exc_info=True)


class FileChangeMonitor(ChangeMonitor):
    """Watches a property-list or flat preference file."""

    def __init__(self, path: Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)

    def describe(self) -> str:
        return str(self._path)

    def _signature(self) -> Hashable:
        try:
            stat = os.stat(self._path)
        except FileNotFoundError:
            return None
        return (stat.st_mtime_ns, stat.st_size, stat.st_ino)


class RegistryChangeMonitor(ChangeMonitor):
    """Watches the last-write time of a registry key."""

    def __init__(
        self,
        hive: str,
        sub_key: str,
        *,
        last_write: LastWriteProbe = winreg_last_write,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._hive = hive
        self._sub_key = sub_key
        self._last_write = last_write

    def describe(self) -> str:
        return f"{self._hive}\\{self._sub_key}"

    def _signature(self) -> Hashable:
        return self._last_write(self._hive, self._sub_key)


class InertChangeMonitor(ChangeMonitor):
    """Monitor for the unsupported platform: never starts."""

    def describe(self) -> str:
        return "<unsupported>"

    def _signature(self) -> Hashable:
        return None

    def start_monitoring(self) -> None:
        _logger.debug("Change monitoring is not supported on this platform")
