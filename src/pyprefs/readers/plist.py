"""macOS property-list backend."""

from __future__ import annotations

import plistlib
from typing import Any
from xml.parsers.expat import ExpatError

from pyprefs.exceptions import StoreReadError
from pyprefs.models import PreferenceKey
from pyprefs.readers.base import StoreReader


class PlistStoreReader(StoreReader):
    """Reader for ``~/Library/Preferences/unity.<org>.<product>.plist``.

    XML and binary property lists are both accepted. The root node must be a
    dictionary. ``string``, ``integer`` and ``real`` nodes keep their native
    types; any other node is enumerated but never classified.
    """

    def _load(self) -> dict[PreferenceKey, Any]:
        path = self._descriptor.path
        if path is None:
            return {}
        try:
            with path.open("rb") as fp:
                data = plistlib.load(fp)
        except FileNotFoundError:
            return {}
        except (
            plistlib.InvalidFileException,
            ExpatError,
            ValueError,
            OverflowError,
            AttributeError,
            TypeError,
            KeyError,
            IndexError,
        ) as exc:
            # plistlib surfaces some malformed nodes as these.
            raise StoreReadError(f"Malformed property list {path}", location=str(path)) from exc

        if not isinstance(data, dict):
            raise StoreReadError(
                f"Property list root is {type(data).__name__}, expected dict",
                location=str(path),
            )
        return {str(key): value for key, value in data.items()}
