"""Resolve where the host framework persists preferences on each platform."""

from __future__ import annotations

import ntpath
import posixpath
import sys
from pathlib import Path

from pyprefs.models import OsFamily, StoreDescriptor, StoreKind

REGISTRY_HIVE = "HKEY_CURRENT_USER"
REGISTRY_DISPLAY_PREFIX = "<CurrentUser>"
HOME_DISPLAY_PREFIX = "~"

UNSUPPORTED = StoreDescriptor(kind=StoreKind.UNSUPPORTED, platform=OsFamily.UNKNOWN)


def detect_platform(sys_platform: str | None = None) -> OsFamily:
    """Map ``sys.platform`` (or the given value) to an :class:`OsFamily`."""
    value = sys.platform if sys_platform is None else sys_platform
    if value in ("win32", "cygwin"):
        return OsFamily.WINDOWS
    if value == "darwin":
        return OsFamily.MACOS
    if value.startswith("linux"):
        return OsFamily.LINUX
    return OsFamily.UNKNOWN


def locate_store(
    organization: str,
    product: str,
    platform: OsFamily,
    *,
    home: Path | str,
) -> StoreDescriptor:
    """Return the descriptor of the preference store for *organization*/*product*.

    Pure function: nothing is read from disk or the registry. Unknown
    platforms yield the inert unsupported descriptor instead of raising.
    """
    if platform is OsFamily.WINDOWS:
        return StoreDescriptor(
            kind=StoreKind.REGISTRY,
            platform=platform,
            root=REGISTRY_HIVE,
            location=ntpath.join("SOFTWARE", "Unity", "UnityEditor", organization, product),
            display_prefix=REGISTRY_DISPLAY_PREFIX,
        )
    if platform is OsFamily.MACOS:
        return StoreDescriptor(
            kind=StoreKind.PLIST,
            platform=platform,
            root=str(home),
            location=posixpath.join("Library", "Preferences", f"unity.{organization}.{product}.plist"),
            display_prefix=HOME_DISPLAY_PREFIX,
        )
    if platform is OsFamily.LINUX:
        return StoreDescriptor(
            kind=StoreKind.FLAT_FILE,
            platform=platform,
            root=str(home),
            location=posixpath.join(".config", "unity3d", organization, product, "prefs"),
            display_prefix=HOME_DISPLAY_PREFIX,
        )
    return UNSUPPORTED
