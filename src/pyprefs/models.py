"""Data model shared by the locator, readers, probe and accessor.

Preference values are a tagged union over string, integer and float. The
underlying stores carry no reliable tag, so the tag is inferred by
:mod:`pyprefs.probe`; the models here only hold the result.

All models are frozen. Values are validated in strict mode so a ``float``
never silently becomes an ``int`` (or the other way round) on the way
through the model layer.
"""

from __future__ import annotations

import ntpath
import posixpath
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PreferenceKey = str
"""Unique key name within one preference store."""


class ValueType(StrEnum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"


class OsFamily(StrEnum):
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class StoreKind(StrEnum):
    REGISTRY = "registry"
    PLIST = "plist"
    FLAT_FILE = "flat_file"
    UNSUPPORTED = "unsupported"


class MonitorState(StrEnum):
    IDLE = "idle"
    WATCHING = "watching"


class SuppressionState(StrEnum):
    ARMED = "armed"
    CONSUMED = "consumed"


class _ValueBase(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)


class StringValue(_ValueBase):
    type: Literal[ValueType.STRING] = ValueType.STRING
    value: str


class IntValue(_ValueBase):
    type: Literal[ValueType.INT] = ValueType.INT
    value: int


class FloatValue(_ValueBase):
    type: Literal[ValueType.FLOAT] = ValueType.FLOAT
    value: float


PreferenceValue = Annotated[StringValue | IntValue | FloatValue, Field(discriminator="type")]
"""Exactly one classified variant of a stored preference."""


class StoreDescriptor(BaseModel):
    """Immutable handle to the platform-specific preference store.

    ``root`` is the absolute home directory for file-based stores and the
    registry hive name for the registry store. ``location`` is relative to
    ``root``. The unsupported descriptor has both empty.
    """

    model_config = ConfigDict(frozen=True)

    kind: StoreKind
    platform: OsFamily
    root: str = ""
    location: str = ""
    display_prefix: str = ""

    @property
    def is_supported(self) -> bool:
        return self.kind is not StoreKind.UNSUPPORTED

    @property
    def path(self) -> Path | None:
        """Absolute path of a file-based store, ``None`` otherwise."""
        if self.kind not in (StoreKind.PLIST, StoreKind.FLAT_FILE):
            return None
        return Path(self.root) / self.location

    @property
    def display_path(self) -> str:
        """Human-readable location, e.g. ``~/.config/unity3d/Acme/Game/prefs``."""
        if not self.is_supported:
            return ""
        sep = ntpath.sep if self.kind is StoreKind.REGISTRY else posixpath.sep
        return f"{self.display_prefix}{sep}{self.location}"


class PreferenceEntry(BaseModel):
    """A classified key, ready to be displayed."""

    model_config = ConfigDict(frozen=True)

    key: PreferenceKey
    value: PreferenceValue
    host_defined: bool = False


class KeyPartition(BaseModel):
    """Keys split into user-defined and host-framework-defined groups."""

    model_config = ConfigDict(frozen=True)

    user_defined: tuple[PreferenceKey, ...] = ()
    host_defined: tuple[PreferenceKey, ...] = ()

    @field_validator("user_defined", "host_defined")
    @classmethod
    def _sorted(cls, value: tuple[PreferenceKey, ...]) -> tuple[PreferenceKey, ...]:
        return tuple(sorted(value))
