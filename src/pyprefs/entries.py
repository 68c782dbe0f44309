"""Grouping and classification of keys for display.

The host framework stores its own settings next to the application's. They
are recognised purely by name prefix.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from pyprefs.models import KeyPartition, PreferenceEntry, PreferenceKey, PreferenceValue

HOST_KEY_PREFIXES: tuple[str, ...] = ("unity.", "UnityGraphicsQuality")


class _EntrySource(Protocol):
    def list_keys(self, reload: bool = False) -> frozenset[PreferenceKey]: ...

    def classify_and_read(self, key: PreferenceKey) -> PreferenceValue | None: ...


def is_host_defined(key: PreferenceKey) -> bool:
    return key.startswith(HOST_KEY_PREFIXES)


def partition_keys(keys: Iterable[PreferenceKey]) -> KeyPartition:
    user_defined: list[PreferenceKey] = []
    host_defined: list[PreferenceKey] = []
    for key in keys:
        (host_defined if is_host_defined(key) else user_defined).append(key)
    return KeyPartition(user_defined=tuple(user_defined), host_defined=tuple(host_defined))


def collect_entries(source: _EntrySource, *, reload: bool = False) -> list[PreferenceEntry]:
    """Classify every key of *source*, user-defined keys first.

    Keys the probe cannot classify are left out.
    """
    partition = partition_keys(source.list_keys(reload))
    entries: list[PreferenceEntry] = []
    for host_defined, keys in ((False, partition.user_defined), (True, partition.host_defined)):
        for key in keys:
            value = source.classify_and_read(key)
            if value is None:
                continue
            entries.append(PreferenceEntry(key=key, value=value, host_defined=host_defined))
    return entries
