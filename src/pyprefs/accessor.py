"""Preference store accessor: the single entry point for UI consumers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pyprefs.config import PrefsConfig
from pyprefs.locator import locate_store
from pyprefs.models import MonitorState, PreferenceKey, PreferenceValue, StoreDescriptor, StoreKind
from pyprefs.monitor import (
    ChangeMonitor,
    FileChangeMonitor,
    InertChangeMonitor,
    Listener,
    RegistryChangeMonitor,
)
from pyprefs.probe import classify_and_read
from pyprefs.readers import (
    FlatFileStoreReader,
    NullStoreReader,
    PlistStoreReader,
    RegistryStoreReader,
    StoreReader,
)

_logger = logging.getLogger(__name__)


def create_backend(descriptor: StoreDescriptor, config: PrefsConfig) -> tuple[StoreReader, ChangeMonitor]:
    """Select the reader and monitor implementations for *descriptor*."""
    timing: dict[str, Any] = {"poll_interval": config.poll_interval, "debounce": config.debounce}

    if descriptor.kind is StoreKind.REGISTRY:
        return (
            RegistryStoreReader(descriptor),
            RegistryChangeMonitor(descriptor.root, descriptor.location, **timing),
        )

    path = descriptor.path
    if descriptor.kind is StoreKind.PLIST and path is not None:
        return PlistStoreReader(descriptor), FileChangeMonitor(path, **timing)
    if descriptor.kind is StoreKind.FLAT_FILE and path is not None:
        return FlatFileStoreReader(descriptor), FileChangeMonitor(path, **timing)

    return NullStoreReader(descriptor), InertChangeMonitor(**timing)


class PreferenceAccessor:
    """Enumerate, classify and watch the preference store of one application.

    Usage::

        with PreferenceAccessor(PrefsConfig("Acme", "Game")) as prefs:
            signal = ChangeSignal()
            prefs.add_change_listener(signal.set)
            prefs.start_monitoring()
            ...
            if signal.consume():
                keys = prefs.list_keys(reload=True)

    The store location is resolved once here and never changes; target a
    different platform by constructing a new accessor. No method raises for
    missing, malformed or unsupported stores.
    """

    def __init__(
        self,
        config: PrefsConfig,
        *,
        reader: StoreReader | None = None,
        monitor: ChangeMonitor | None = None,
    ) -> None:
        self._config = config
        self._descriptor = locate_store(
            config.organization,
            config.product,
            config.resolved_platform(),
            home=config.resolved_home(),
        )
        default_reader, default_monitor = create_backend(self._descriptor, config)
        self._reader = reader if reader is not None else default_reader
        self._monitor = monitor if monitor is not None else default_monitor

        _logger.debug(
            "Preference store resolved kind=%s path=%s",
            self._descriptor.kind,
            self._descriptor.display_path,
        )
        self._reader.list_keys(reload=True)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> PreferenceAccessor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Stop monitoring. The accessor stays usable for reads."""
        self._monitor.stop_monitoring()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> PrefsConfig:
        return self._config

    @property
    def descriptor(self) -> StoreDescriptor:
        return self._descriptor

    @property
    def stale(self) -> bool:
        """Whether the last reload fell back to an older snapshot."""
        return self._reader.stale

    @property
    def monitor_state(self) -> MonitorState:
        return self._monitor.state

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def list_keys(self, reload: bool = False) -> frozenset[PreferenceKey]:
        return self._reader.list_keys(reload)

    def classify_and_read(self, key: PreferenceKey) -> PreferenceValue | None:
        return classify_and_read(self._reader, key)

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_monitoring(self) -> None:
        self._monitor.start_monitoring()

    def stop_monitoring(self) -> None:
        self._monitor.stop_monitoring()

    def is_monitoring(self) -> bool:
        return self._monitor.is_monitoring()

    def ignore_next_change(self) -> None:
        """Call immediately before writing through the host preference API."""
        self._monitor.ignore_next_change()

    def add_change_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for change notifications.

        Listeners run on the monitor's background thread and must only hand
        the notification over (see :class:`~pyprefs.monitor.ChangeSignal`).
        Returns a function that unregisters the listener.
        """
        return self._monitor.add_listener(listener)
