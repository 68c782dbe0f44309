"""Sentinel-based value type probing.

Preference stores expose no per-key type metadata, and the typed getters
return the caller's default both when a key is absent and when it is stored
under another type. The probe therefore reads each key under defaults that
never occur as real values and keeps the first read that does not come back
as its default:

1. string, with :data:`STRING_SENTINEL`
2. float, with ``NaN``
3. int, with :data:`INT_SENTINEL`

String goes first because no numeric default can tell a stored string apart
from a missing key.

Known limitation: a stored string equal to :data:`STRING_SENTINEL`, or an int
equal to :data:`INT_SENTINEL`, cannot be told apart from "absent" and is
misclassified or omitted.
"""

from __future__ import annotations

import math
from typing import Protocol

from pyprefs.models import FloatValue, IntValue, PreferenceKey, PreferenceValue, StringValue

STRING_SENTINEL = "<pyprefs-absent-7d3f2c1e-5b8a-4e0f-9c6d-2a1b0e9f8c47>"
INT_SENTINEL = -(2**31)


class TypedPreferenceSource(Protocol):
    """Typed getters with host preference API semantics."""

    def get_string(self, key: PreferenceKey, default: str) -> str: ...

    def get_float(self, key: PreferenceKey, default: float) -> float: ...

    def get_int(self, key: PreferenceKey, default: int) -> int: ...


def classify_and_read(source: TypedPreferenceSource, key: PreferenceKey) -> PreferenceValue | None:
    """Classify *key* and return its typed value, or ``None`` if unclassifiable."""
    text = source.get_string(key, STRING_SENTINEL)
    if text != STRING_SENTINEL:
        return StringValue(value=text)

    number = source.get_float(key, math.nan)
    if not math.isnan(number):
        return FloatValue(value=number)

    integer = source.get_int(key, INT_SENTINEL)
    if integer != INT_SENTINEL:
        return IntValue(value=integer)

    return None
