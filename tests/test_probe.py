from __future__ import annotations

import math
import struct
from typing import Any

import pytest

from pyprefs.models import FloatValue, IntValue, StringValue, ValueType
from pyprefs.probe import INT_SENTINEL, STRING_SENTINEL, classify_and_read


class _HostPrefs:
    """Typed getters with host semantics over a plain dict, recording calls."""

    def __init__(self, values: dict[str, Any]) -> None:
        self._values = values
        self.calls: list[str] = []

    def get_string(self, key: str, default: str) -> str:
        self.calls.append("string")
        value = self._values.get(key)
        return value if isinstance(value, str) else default

    def get_float(self, key: str, default: float) -> float:
        self.calls.append("float")
        value = self._values.get(key)
        return value if isinstance(value, float) else default

    def get_int(self, key: str, default: int) -> int:
        self.calls.append("int")
        value = self._values.get(key)
        return value if isinstance(value, int) and not isinstance(value, bool) else default


def test_string_stops_after_first_probe() -> None:
    prefs = _HostPrefs({"playerName": "Nils"})

    assert classify_and_read(prefs, "playerName") == StringValue(value="Nils")
    assert prefs.calls == ["string"]


def test_empty_string_is_still_a_string() -> None:
    prefs = _HostPrefs({"motd": ""})

    result = classify_and_read(prefs, "motd")

    assert result == StringValue(value="")
    assert result is not None and result.type is ValueType.STRING


def test_float_probed_second() -> None:
    prefs = _HostPrefs({"volume": 0.8})

    assert classify_and_read(prefs, "volume") == FloatValue(value=0.8)
    assert prefs.calls == ["string", "float"]


@pytest.mark.parametrize("value", [0.1 + 0.2, -0.0, 1e-310, 3.4028234663852886e38, math.pi])
def test_float_returned_bit_for_bit(value: float) -> None:
    result = classify_and_read(_HostPrefs({"x": value}), "x")

    assert isinstance(result, FloatValue)
    assert struct.pack("<d", result.value) == struct.pack("<d", value)


def test_int_probed_last() -> None:
    prefs = _HostPrefs({"level": 3})

    assert classify_and_read(prefs, "level") == IntValue(value=3)
    assert prefs.calls == ["string", "float", "int"]


def test_absent_key_is_omitted() -> None:
    prefs = _HostPrefs({})

    assert classify_and_read(prefs, "missing") is None
    assert prefs.calls == ["string", "float", "int"]


def test_unsupported_native_type_is_omitted() -> None:
    assert classify_and_read(_HostPrefs({"flag": True}), "flag") is None
    assert classify_and_read(_HostPrefs({"blob": b"\x00"}), "blob") is None


def test_nan_float_is_omitted() -> None:
    assert classify_and_read(_HostPrefs({"x": math.nan}), "x") is None


def test_values_equal_to_sentinels_are_misread() -> None:
    # Documented limitation of sentinel probing.
    assert classify_and_read(_HostPrefs({"s": STRING_SENTINEL}), "s") is None
    assert classify_and_read(_HostPrefs({"i": INT_SENTINEL}), "i") is None


def test_int_sentinel_neighbour_is_classified() -> None:
    assert classify_and_read(_HostPrefs({"i": INT_SENTINEL + 1}), "i") == IntValue(value=INT_SENTINEL + 1)
