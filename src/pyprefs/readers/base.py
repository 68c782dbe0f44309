"""Common caching behaviour for preference store readers."""

from __future__ import annotations

import abc
import logging
from typing import Any

from pyprefs.exceptions import StoreReadError, StoreUnavailableError
from pyprefs.models import PreferenceKey, StoreDescriptor

_logger = logging.getLogger(__name__)

_MISSING = object()


class StoreReader(abc.ABC):
    """Read-only view of one preference store.

    The reader keeps the last successfully parsed snapshot of the store.
    ``list_keys(reload=True)`` re-parses it; everything else works from the
    snapshot. The typed getters follow the host preference API contract: the
    caller-supplied default is returned when the key is absent *or* stored
    under a different type.
    """

    def __init__(self, descriptor: StoreDescriptor) -> None:
        self._descriptor = descriptor
        self._snapshot: dict[PreferenceKey, Any] | None = None
        self._stale = False

    @property
    def descriptor(self) -> StoreDescriptor:
        return self._descriptor

    @property
    def stale(self) -> bool:
        """Whether the last reload failed and an older snapshot is being served."""
        return self._stale

    @abc.abstractmethod
    def _load(self) -> dict[PreferenceKey, Any]:
        """Parse the store into ``{key: native value}``.

        Must return an empty mapping when the store does not exist and raise
        :class:`StoreReadError` when it exists but cannot be parsed.
        """

    def list_keys(self, reload: bool = False) -> frozenset[PreferenceKey]:
        """Return the persisted key names.

        With ``reload=False`` the cached set from the last successful
        enumeration is returned. Never raises for missing or malformed stores.
        """
        if reload or self._snapshot is None:
            self._reload()
        return frozenset(self._snapshot or ())

    def _reload(self) -> None:
        try:
            values = self._load()
        except StoreUnavailableError as exc:
            _logger.debug("Store unavailable location=%s: %s", self._descriptor.location, exc)
            self._snapshot = {}
            self._stale = False
            return
        except (StoreReadError, OSError):
            # Usually a concurrent write by the host process; keep serving the
            # last good snapshot until the next reload succeeds.
            _logger.warning(
                "Could not parse preference store %s, keeping last snapshot",
                self._descriptor.display_path,
                exc_info=True,
            )
            if self._snapshot is None:
                self._snapshot = {}
            self._stale = True
            return

        self._snapshot = values
        self._stale = False
        _logger.debug("Loaded %d preference keys from %s", len(values), self._descriptor.display_path)

    def _value(self, key: PreferenceKey) -> Any:
        if self._snapshot is None:
            self._reload()
        snapshot = self._snapshot or {}
        return snapshot.get(key, _MISSING)

    def get_string(self, key: PreferenceKey, default: str) -> str:
        value = self._value(key)
        return value if isinstance(value, str) else default

    def get_float(self, key: PreferenceKey, default: float) -> float:
        value = self._value(key)
        return value if isinstance(value, float) else default

    def get_int(self, key: PreferenceKey, default: int) -> int:
        value = self._value(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return default
        return value


class NullStoreReader(StoreReader):
    """Reader for the unsupported platform: always an empty store."""

    def _load(self) -> dict[PreferenceKey, Any]:
        return {}
