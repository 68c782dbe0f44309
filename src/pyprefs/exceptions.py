"""Custom exception hierarchy for pyprefs."""

from __future__ import annotations


class PrefsError(Exception):
    """Base exception for all pyprefs errors."""


class PrefsConfigError(PrefsError):
    """Invalid or missing configuration."""


class StoreReadError(PrefsError):
    """The preference store exists but could not be parsed.

    Raised by reader backends and caught by :class:`~pyprefs.readers.StoreReader`,
    which falls back to the last known-good snapshot.
    """

    def __init__(self, message: str, *, location: str = "") -> None:
        self.location = location
        super().__init__(message)


class StoreUnavailableError(PrefsError):
    """The backend lacks the capability to access the store on this host.

    For example the registry backend on a Python build without ``winreg``.
    """
