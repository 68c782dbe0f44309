"""Linux flat preference file backend.

The store is a sequence of ``pref`` records::

    <unity_prefs version_major="1" version_minor="1">
        <pref name="level" type="int">3</pref>
        <pref name="volume" type="float">0.8</pref>
        <pref name="playerName" type="string">Tmlscw==</pref>
    </unity_prefs>

Typed ``string`` records hold base64-encoded UTF-8; text that is not valid
base64 is kept as written. The ``type`` attribute is optional. Untyped
records are inferred from their text: an integer literal is an int, a
decimal literal is a float, anything else is a string.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any
from xml.etree import ElementTree

from pyprefs.exceptions import StoreReadError
from pyprefs.models import PreferenceKey
from pyprefs.readers.base import StoreReader

_logger = logging.getLogger(__name__)

_INT_LITERAL = re.compile(r"^[+-]?\d+$")
_FLOAT_LITERAL = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")

RECORD_TAG = "pref"


def decode_string(text: str) -> str:
    """Decode a typed string record, falling back to the raw text."""
    try:
        return base64.b64decode(text.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return text


def decode_text(text: str, type_name: str | None) -> Any:
    """Decode the text of one record, honouring its ``type`` attribute.

    Returns ``None`` for records that cannot be decoded so they stay
    unclassifiable instead of aborting the whole parse.
    """
    if type_name is None:
        stripped = text.strip()
        try:
            if _INT_LITERAL.match(stripped):
                return int(stripped)
            if _FLOAT_LITERAL.match(stripped):
                return float(stripped)
        except ValueError:
            return None
        return text

    kind = type_name.strip().lower()
    try:
        if kind == "int":
            return int(text.strip())
        if kind == "float":
            return float(text.strip())
    except ValueError:
        return None
    if kind == "string":
        return decode_string(text)
    return None


class FlatFileStoreReader(StoreReader):
    """Reader for ``~/.config/unity3d/<org>/<product>/prefs``."""

    def _load(self) -> dict[PreferenceKey, Any]:
        path = self._descriptor.path
        if path is None:
            return {}
        try:
            tree = ElementTree.parse(path)
        except FileNotFoundError:
            return {}
        except ElementTree.ParseError as exc:
            raise StoreReadError(f"Malformed preference file {path}", location=str(path)) from exc

        values: dict[PreferenceKey, Any] = {}
        for record in tree.getroot().iter(RECORD_TAG):
            name = record.get("name")
            if not name:
                _logger.debug("Skipping preference record without name in %s", path)
                continue
            values[name] = decode_text(record.text or "", record.get("type"))
        return values
