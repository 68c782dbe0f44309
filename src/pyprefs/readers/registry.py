"""Windows registry backend.

The host framework writes one registry value per preference under
``HKEY_CURRENT_USER\\SOFTWARE\\Unity\\UnityEditor\\<org>\\<product>``. Value
names carry a ``_h<hash>`` suffix which is stripped to recover the key.

Values are enumerated as raw bytes through ``RegEnumValueW`` because
``winreg`` truncates the 8-byte ``REG_DWORD`` records the host uses for
floats. Records are decoded as follows:

* ``REG_SZ`` - string
* ``REG_BINARY`` - NUL-terminated UTF-8 string; exactly 8 bytes without a
  trailing NUL is a little-endian IEEE 754 double
* ``REG_DWORD`` - signed 32-bit integer; 8 bytes of data is a double
* ``REG_QWORD`` - IEEE 754 double stored bit-for-bit

A double whose most significant byte is zero (positive subnormals) cannot be
told apart from an 8-byte string in a ``REG_BINARY`` record and is read as a
string.
"""

from __future__ import annotations

import ctypes
import logging
import re
import struct
from collections.abc import Callable, Iterable
from typing import Any

from pyprefs.exceptions import StoreReadError, StoreUnavailableError
from pyprefs.models import PreferenceKey, StoreDescriptor
from pyprefs.readers.base import StoreReader

_logger = logging.getLogger(__name__)

# Numeric values of the winreg type constants, so records can be decoded on
# hosts without winreg.
REG_SZ = 1
REG_BINARY = 3
REG_DWORD = 4
REG_QWORD = 11

_ERROR_SUCCESS = 0
_ERROR_MORE_DATA = 234
_ERROR_NO_MORE_ITEMS = 259
_MAX_VALUE_NAME = 16384

_HASH_SUFFIX = re.compile(r"^(?P<key>.*)_h\d+$")

RegistryRecord = tuple[str, Any, int]
"""``(value name, data, registry type)``; data is raw ``bytes`` or a ``winreg`` value."""

RegistryOpener = Callable[[str, str], Iterable[RegistryRecord]]
"""Enumerate the value records of ``(hive, sub_key)``; empty when missing."""

LastWriteProbe = Callable[[str, str], int | None]
"""Return the last-write time of ``(hive, sub_key)``, ``None`` when missing."""


def _import_winreg() -> Any:
    try:
        import winreg
    except ImportError as exc:
        raise StoreUnavailableError("winreg is not available on this host") from exc
    return winreg


def _enum_value_raw(handle: Any, index: int) -> RegistryRecord | None:
    """Read value *index* of an open key as ``(name, bytes, type)``.

    Returns ``None`` once *index* is past the last value.
    """
    from ctypes import wintypes

    enum_value = ctypes.windll.advapi32.RegEnumValueW
    enum_value.argtypes = [
        wintypes.HKEY,
        wintypes.DWORD,
        wintypes.LPWSTR,
        ctypes.POINTER(wintypes.DWORD),
        ctypes.POINTER(wintypes.DWORD),
        ctypes.POINTER(wintypes.DWORD),
        ctypes.c_void_p,
        ctypes.POINTER(wintypes.DWORD),
    ]
    enum_value.restype = wintypes.LONG

    hkey = wintypes.HKEY(int(handle))
    data_size = 64
    while True:
        name = ctypes.create_unicode_buffer(_MAX_VALUE_NAME)
        name_len = wintypes.DWORD(_MAX_VALUE_NAME)
        value_type = wintypes.DWORD()
        data = ctypes.create_string_buffer(data_size)
        data_len = wintypes.DWORD(data_size)
        status = enum_value(
            hkey,
            index,
            name,
            ctypes.byref(name_len),
            None,
            ctypes.byref(value_type),
            data,
            ctypes.byref(data_len),
        )
        if status == _ERROR_MORE_DATA:
            data_size = max(data_size * 2, data_len.value)
            continue
        if status == _ERROR_NO_MORE_ITEMS:
            return None
        if status != _ERROR_SUCCESS:
            raise ctypes.WinError(status)
        return name.value, data.raw[: data_len.value], value_type.value


def winreg_records(hive: str, sub_key: str) -> list[RegistryRecord]:
    """Enumerate all values of a registry key as raw-bytes records."""
    winreg = _import_winreg()
    root = getattr(winreg, hive)
    try:
        handle = winreg.OpenKey(root, sub_key, 0, winreg.KEY_READ)
    except FileNotFoundError:
        return []

    records: list[RegistryRecord] = []
    with handle:
        index = 0
        while True:
            record = _enum_value_raw(handle, index)
            if record is None:
                break
            records.append(record)
            index += 1
    return records


def winreg_last_write(hive: str, sub_key: str) -> int | None:
    """Last-write time (100ns ticks) of a registry key through :mod:`winreg`."""
    winreg = _import_winreg()
    root = getattr(winreg, hive)
    try:
        handle = winreg.OpenKey(root, sub_key, 0, winreg.KEY_READ)
    except FileNotFoundError:
        return None
    with handle:
        _subkeys, _values, modified = winreg.QueryInfoKey(handle)
    return int(modified)


def strip_hash_suffix(name: str) -> PreferenceKey:
    """Recover the preference key from a registry value name."""
    match = _HASH_SUFFIX.match(name)
    if match is None:
        return name
    return match.group("key")


def _decode_utf8(data: bytes) -> str | None:
    try:
        return data.rstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError:
        return None


def _as_double(data: bytes) -> float:
    return struct.unpack("<d", data)[0]


def decode_record(data: Any, reg_type: int) -> Any:
    """Decode a registry record into a native str/int/float.

    *data* is either the raw bytes of the value or the object ``winreg``
    returns for it. Records of other types, or with an unexpected size, are
    returned as ``None`` so they are enumerated but never classified.
    """
    if isinstance(data, bytearray):
        data = bytes(data)

    if reg_type == REG_SZ:
        if isinstance(data, str):
            return data
        if isinstance(data, bytes):
            try:
                return data.decode("utf-16-le").rstrip("\x00")
            except UnicodeDecodeError:
                return None
        return None

    if reg_type == REG_BINARY and isinstance(data, bytes):
        if len(data) == 8 and not data.endswith(b"\x00"):
            return _as_double(data)
        return _decode_utf8(data)

    if reg_type == REG_DWORD:
        if isinstance(data, int):
            return struct.unpack("<i", struct.pack("<I", data & 0xFFFFFFFF))[0]
        if isinstance(data, bytes) and len(data) == 4:
            return struct.unpack("<i", data)[0]
        if isinstance(data, bytes) and len(data) == 8:
            return _as_double(data)
        return None

    if reg_type == REG_QWORD:
        if isinstance(data, int):
            return _as_double(struct.pack("<Q", data & 0xFFFFFFFFFFFFFFFF))
        if isinstance(data, bytes) and len(data) == 8:
            return _as_double(data)
    return None


class RegistryStoreReader(StoreReader):
    """Reader for the registry-tree store."""

    def __init__(
        self,
        descriptor: StoreDescriptor,
        *,
        opener: RegistryOpener = winreg_records,
    ) -> None:
        super().__init__(descriptor)
        self._opener = opener

    def _load(self) -> dict[PreferenceKey, Any]:
        try:
            records = list(self._opener(self._descriptor.root, self._descriptor.location))
        except (AttributeError, TypeError, ValueError) as exc:
            raise StoreReadError(
                f"Malformed registry key {self._descriptor.location}",
                location=self._descriptor.location,
            ) from exc

        values: dict[PreferenceKey, Any] = {}
        for name, data, reg_type in records:
            key = strip_hash_suffix(name)
            if key in values:
                _logger.debug("Duplicate registry value for key=%s name=%s", key, name)
            values[key] = decode_record(data, reg_type)
        return values
