from __future__ import annotations

import plistlib
import struct
from pathlib import Path
from typing import Any

import pytest

from pyprefs.exceptions import StoreUnavailableError
from pyprefs.locator import locate_store
from pyprefs.models import OsFamily, StoreDescriptor
from pyprefs.readers import (
    FlatFileStoreReader,
    NullStoreReader,
    PlistStoreReader,
    RegistryStoreReader,
)
from pyprefs.readers.flat_file import decode_text
from pyprefs.readers.registry import (
    REG_BINARY,
    REG_DWORD,
    REG_QWORD,
    REG_SZ,
    RegistryRecord,
    decode_record,
    strip_hash_suffix,
)


def _flat_descriptor(home: Path) -> StoreDescriptor:
    return locate_store("Acme", "Rocket", OsFamily.LINUX, home=home)


def _plist_descriptor(home: Path) -> StoreDescriptor:
    return locate_store("Acme", "Rocket", OsFamily.MACOS, home=home)


def _write_flat(descriptor: StoreDescriptor, body: str) -> None:
    path = descriptor.path
    assert path is not None
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def _write_plist(descriptor: StoreDescriptor, values: dict[str, Any], *, fmt: Any = plistlib.FMT_XML) -> None:
    path = descriptor.path
    assert path is not None
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fp:
        plistlib.dump(values, fp, fmt=fmt)


_FLAT_PREFS = """<unity_prefs version_major="1" version_minor="1">
    <pref name="volume" type="float">0.8</pref>
    <pref name="playerName" type="string">Tmlscw==</pref>
    <pref name="level" type="int">3</pref>
    <pref name="unity.cloud_userid" type="string">YWJj</pref>
</unity_prefs>
"""


# ---------------------------------------------------------------------------
# Flat file
# ---------------------------------------------------------------------------


def test_flat_file_lists_and_reads_typed_records(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, _FLAT_PREFS)
    reader = FlatFileStoreReader(descriptor)

    assert reader.list_keys(reload=True) == {"volume", "playerName", "level", "unity.cloud_userid"}
    assert reader.get_float("volume", -1.0) == 0.8
    assert reader.get_string("playerName", "?") == "Nils"
    assert reader.get_int("level", -1) == 3


def test_flat_file_typed_getters_return_default_on_type_mismatch(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, _FLAT_PREFS)
    reader = FlatFileStoreReader(descriptor)

    assert reader.get_string("level", "default") == "default"
    assert reader.get_int("volume", 7) == 7
    assert reader.get_float("playerName", 1.5) == 1.5
    assert reader.get_string("missing", "default") == "default"


def test_flat_file_missing_is_empty_store(tmp_path: Path) -> None:
    reader = FlatFileStoreReader(_flat_descriptor(tmp_path))

    assert reader.list_keys(reload=True) == frozenset()
    assert reader.stale is False


def test_flat_file_cache_only_refreshes_on_reload(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, '<unity_prefs><pref name="a" type="int">1</pref></unity_prefs>')
    reader = FlatFileStoreReader(descriptor)
    first = reader.list_keys(reload=True)

    _write_flat(
        descriptor,
        '<unity_prefs><pref name="a" type="int">1</pref><pref name="b" type="int">2</pref></unity_prefs>',
    )

    assert reader.list_keys() == first
    assert reader.list_keys() == first
    assert reader.list_keys(reload=True) == {"a", "b"}


def test_flat_file_parse_race_keeps_last_snapshot(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, _FLAT_PREFS)
    reader = FlatFileStoreReader(descriptor)
    good = reader.list_keys(reload=True)

    _write_flat(descriptor, '<unity_prefs><pref name="volume" type="fl')

    assert reader.list_keys(reload=True) == good
    assert reader.stale is True
    assert reader.get_float("volume", -1.0) == 0.8

    _write_flat(descriptor, _FLAT_PREFS)
    reader.list_keys(reload=True)
    assert reader.stale is False


def test_flat_file_truncated_to_empty_before_first_read(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, "")
    reader = FlatFileStoreReader(descriptor)

    assert reader.list_keys(reload=True) == frozenset()
    assert reader.stale is True


def test_flat_file_oversized_untyped_number_is_unclassifiable(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    digits = "9" * 5000
    _write_flat(descriptor, f'<unity_prefs><pref name="x">{digits}</pref><pref name="ok">2</pref></unity_prefs>')
    reader = FlatFileStoreReader(descriptor)

    assert reader.list_keys(reload=True) == {"x", "ok"}
    assert reader.stale is False
    assert reader.get_int("x", -1) == -1
    assert reader.get_string("x", "d") == "d"
    assert reader.get_int("ok", -1) == 2


def test_flat_file_skips_nameless_records(tmp_path: Path) -> None:
    descriptor = _flat_descriptor(tmp_path)
    _write_flat(descriptor, '<unity_prefs><pref type="int">1</pref><pref name="ok">2</pref></unity_prefs>')

    assert FlatFileStoreReader(descriptor).list_keys(reload=True) == {"ok"}


@pytest.mark.parametrize(
    ("text", "type_name", "expected"),
    [
        ("42", None, 42),
        ("-7", None, -7),
        ("0.5", None, 0.5),
        ("1e3", None, 1000.0),
        ("hello", None, "hello"),
        ("nan", None, "nan"),
        ("MTI=", "string", "12"),
        ("plain text!", "string", "plain text!"),
        ("", "string", ""),
        (" 3 ", "int", 3),
        ("2.25", "FLOAT", 2.25),
        ("abc", "int", None),
        ("1", "bool", None),
    ],
)
def test_decode_text(text: str, type_name: str | None, expected: Any) -> None:
    result = decode_text(text, type_name)
    assert result == expected
    assert type(result) is type(expected)


# ---------------------------------------------------------------------------
# Property list
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("fmt", [plistlib.FMT_XML, plistlib.FMT_BINARY])
def test_plist_reads_native_nodes(tmp_path: Path, fmt: Any) -> None:
    descriptor = _plist_descriptor(tmp_path)
    _write_plist(descriptor, {"volume": 0.8, "playerName": "Nils", "level": 3, "flag": True}, fmt=fmt)
    reader = PlistStoreReader(descriptor)

    assert reader.list_keys(reload=True) == {"volume", "playerName", "level", "flag"}
    assert reader.get_float("volume", -1.0) == 0.8
    assert reader.get_string("playerName", "?") == "Nils"
    assert reader.get_int("level", -1) == 3
    assert reader.get_int("flag", -1) == -1


def test_plist_missing_is_empty_store(tmp_path: Path) -> None:
    reader = PlistStoreReader(_plist_descriptor(tmp_path))

    assert reader.list_keys(reload=True) == frozenset()
    assert reader.stale is False


def test_plist_non_dict_root_keeps_snapshot(tmp_path: Path) -> None:
    descriptor = _plist_descriptor(tmp_path)
    _write_plist(descriptor, {"a": 1})
    reader = PlistStoreReader(descriptor)
    reader.list_keys(reload=True)

    path = descriptor.path
    assert path is not None
    with path.open("wb") as fp:
        plistlib.dump(["not", "a", "dict"], fp)

    assert reader.list_keys(reload=True) == {"a"}
    assert reader.stale is True


def test_plist_garbage_keeps_snapshot(tmp_path: Path) -> None:
    descriptor = _plist_descriptor(tmp_path)
    _write_plist(descriptor, {"a": 1})
    reader = PlistStoreReader(descriptor)
    reader.list_keys(reload=True)

    path = descriptor.path
    assert path is not None
    path.write_bytes(b"<?xml version='1.0'?><plist><dict><key>a</key>")

    assert reader.list_keys(reload=True) == {"a"}
    assert reader.stale is True


def test_plist_malformed_node_keeps_snapshot(tmp_path: Path) -> None:
    descriptor = _plist_descriptor(tmp_path)
    _write_plist(descriptor, {"a": 1})
    reader = PlistStoreReader(descriptor)
    reader.list_keys(reload=True)

    path = descriptor.path
    assert path is not None
    path.write_bytes(
        b"<?xml version='1.0'?><plist version='1.0'><dict><key>a</key><date>garbage</date></dict></plist>"
    )

    assert reader.list_keys(reload=True) == {"a"}
    assert reader.stale is True
    assert reader.get_int("a", -1) == 1


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _registry_descriptor(tmp_path: Path) -> StoreDescriptor:
    return locate_store("Acme", "Rocket", OsFamily.WINDOWS, home=tmp_path)


def _double_bits(value: float) -> int:
    return struct.unpack("<Q", struct.pack("<d", value))[0]


def test_registry_strips_hash_suffix_and_decodes(tmp_path: Path) -> None:
    records: list[RegistryRecord] = [
        ("playerName_h3563214", b"Nils\x00", REG_BINARY),
        ("level_h191986", 3, REG_DWORD),
        ("volume_h2831412", _double_bits(0.8), REG_QWORD),
        ("title", "Rocket", REG_SZ),
    ]
    seen: list[tuple[str, str]] = []

    def opener(hive: str, sub_key: str) -> list[RegistryRecord]:
        seen.append((hive, sub_key))
        return records

    reader = RegistryStoreReader(_registry_descriptor(tmp_path), opener=opener)

    assert reader.list_keys(reload=True) == {"playerName", "level", "volume", "title"}
    assert seen == [("HKEY_CURRENT_USER", "SOFTWARE\\Unity\\UnityEditor\\Acme\\Rocket")]
    assert reader.get_string("playerName", "?") == "Nils"
    assert reader.get_int("level", -1) == 3
    assert reader.get_float("volume", -1.0) == 0.8
    assert reader.get_string("title", "?") == "Rocket"


def test_registry_without_winreg_is_empty(tmp_path: Path) -> None:
    def opener(hive: str, sub_key: str) -> list[RegistryRecord]:
        raise StoreUnavailableError("winreg is not available on this host")

    reader = RegistryStoreReader(_registry_descriptor(tmp_path), opener=opener)

    assert reader.list_keys(reload=True) == frozenset()
    assert reader.stale is False


def test_registry_read_failure_keeps_snapshot(tmp_path: Path) -> None:
    calls = {"n": 0}

    def opener(hive: str, sub_key: str) -> list[RegistryRecord]:
        calls["n"] += 1
        if calls["n"] > 1:
            raise PermissionError("access denied")
        return [("a_h1", 1, REG_DWORD)]

    reader = RegistryStoreReader(_registry_descriptor(tmp_path), opener=opener)

    assert reader.list_keys(reload=True) == {"a"}
    assert reader.list_keys(reload=True) == {"a"}
    assert reader.stale is True


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("level_h191986", "level"),
        ("my_hat_h12", "my_hat"),
        ("plain", "plain"),
        ("ends_h", "ends_h"),
    ],
)
def test_strip_hash_suffix(name: str, expected: str) -> None:
    assert strip_hash_suffix(name) == expected


def test_decode_record_signed_dword_and_unknown_types() -> None:
    assert decode_record(0xFFFFFFFF, REG_DWORD) == -1
    assert decode_record(0x80000000, REG_DWORD) == -(2**31)
    assert decode_record(b"\xff\xfe\x00", REG_BINARY) is None
    assert decode_record(["multi", "sz"], 7) is None


def test_decode_record_qword_is_bit_exact() -> None:
    value = 0.1 + 0.2
    decoded = decode_record(_double_bits(value), REG_QWORD)
    assert struct.pack("<d", decoded) == struct.pack("<d", value)


def test_registry_binary_record_of_eight_bytes_is_a_double(tmp_path: Path) -> None:
    records: list[RegistryRecord] = [
        ("volume_h1", struct.pack("<d", 0.8), REG_BINARY),
        ("speed_h2", struct.pack("<d", 2.0), REG_BINARY),
        ("tag_h3", b"Nils\x00\x00\x00\x00", REG_BINARY),
    ]
    reader = RegistryStoreReader(_registry_descriptor(tmp_path), opener=lambda hive, sub_key: records)

    assert reader.list_keys(reload=True) == {"volume", "speed", "tag"}
    assert reader.get_float("volume", -1.0) == 0.8
    assert reader.get_float("speed", -1.0) == 2.0
    assert reader.get_string("speed", "?") == "?"
    assert reader.get_string("tag", "?") == "Nils"


def test_registry_raw_dword_records(tmp_path: Path) -> None:
    records: list[RegistryRecord] = [
        ("volume_h1", struct.pack("<d", 0.8), REG_DWORD),
        ("level_h2", struct.pack("<i", -3), REG_DWORD),
        ("ratio_h3", struct.pack("<d", 0.25), REG_QWORD),
        ("title_h4", "Rocket\x00".encode("utf-16-le"), REG_SZ),
    ]
    reader = RegistryStoreReader(_registry_descriptor(tmp_path), opener=lambda hive, sub_key: records)

    reader.list_keys(reload=True)
    assert reader.get_float("volume", -1.0) == 0.8
    assert reader.get_int("volume", -1) == -1
    assert reader.get_int("level", 0) == -3
    assert reader.get_float("ratio", -1.0) == 0.25
    assert reader.get_string("title", "?") == "Rocket"


def test_decode_record_rejects_odd_sized_numbers() -> None:
    assert decode_record(b"\x01\x02", REG_DWORD) is None
    assert decode_record(b"\x01\x02\x03", REG_QWORD) is None


# ---------------------------------------------------------------------------
# Unsupported
# ---------------------------------------------------------------------------


def test_null_reader_is_always_empty(tmp_path: Path) -> None:
    reader = NullStoreReader(locate_store("Acme", "Rocket", OsFamily.UNKNOWN, home=tmp_path))

    assert reader.list_keys() == frozenset()
    assert reader.list_keys(reload=True) == frozenset()
    assert reader.get_string("anything", "d") == "d"
