"""Accessor configuration for pyprefs."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pyprefs.exceptions import PrefsConfigError
from pyprefs.locator import detect_platform
from pyprefs.models import OsFamily


def _env_float(name: str, value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError as exc:
        raise PrefsConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_platform(value: str | None) -> OsFamily | None:
    if value is None or not value.strip():
        return None
    try:
        return OsFamily(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in OsFamily)
        raise PrefsConfigError(f"PREFS_PLATFORM must be one of {choices}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class PrefsConfig:
    """Accessor configuration.

    Passed once into :class:`~pyprefs.accessor.PreferenceAccessor`; the
    resolved store location never changes for the lifetime of an accessor.

    Parameters
    ----------
    organization : str
        Organization (company) name the host application registers under.
    product : str
        Product name of the host application.
    platform : OsFamily or None
        Target OS family. ``None`` detects it from the running interpreter.
    home : Path or None
        Home directory that file-based stores are resolved against.
        ``None`` uses the current user's home directory.
    poll_interval : float
        Seconds between two polls of the watched store.
    debounce : float
        Quiet period in seconds after the last detected change before a
        single change notification is dispatched.
    """

    organization: str
    product: str
    platform: OsFamily | None = None
    home: Path | None = None
    poll_interval: float = 0.5
    debounce: float = 0.25

    def __post_init__(self) -> None:
        if not self.organization or not self.organization.strip():
            raise PrefsConfigError("organization must be non-empty")
        if not self.product or not self.product.strip():
            raise PrefsConfigError("product must be non-empty")
        if self.poll_interval <= 0:
            raise PrefsConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.debounce < 0:
            raise PrefsConfigError(f"debounce must not be negative, got {self.debounce}")

    def resolved_platform(self) -> OsFamily:
        """Return the configured platform, detecting it when unset."""
        if self.platform is not None:
            return self.platform
        return detect_platform()

    def resolved_home(self) -> Path:
        """Return the configured home directory or the current user's."""
        if self.home is not None:
            return Path(self.home)
        return Path.home()

    @classmethod
    def from_env(cls, **overrides: Any) -> PrefsConfig:
        """Create configuration from environment variables.

        Reads ``PREFS_ORGANIZATION``, ``PREFS_PRODUCT`` and the optional
        ``PREFS_PLATFORM``, ``PREFS_HOME``, ``PREFS_POLL_INTERVAL`` and
        ``PREFS_DEBOUNCE``. Explicit keyword arguments override environment
        values.

        Raises
        ------
        PrefsConfigError
            When a required value is missing or a value cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        for env_key, field_name in (
            ("PREFS_ORGANIZATION", "organization"),
            ("PREFS_PRODUCT", "product"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "platform" not in overrides:
            platform = _env_platform(env.get("PREFS_PLATFORM"))
            if platform is not None:
                config_kwargs["platform"] = platform

        home_env = env.get("PREFS_HOME")
        if home_env and "home" not in overrides:
            config_kwargs["home"] = Path(home_env).expanduser()

        for env_key, field_name in (
            ("PREFS_POLL_INTERVAL", "poll_interval"),
            ("PREFS_DEBOUNCE", "debounce"),
        ):
            if field_name in overrides:
                continue
            number = _env_float(env_key, env.get(env_key))
            if number is not None:
                config_kwargs[field_name] = number

        config_kwargs.update(overrides)

        missing = [name for name in ("organization", "product") if name not in config_kwargs]
        if missing:
            raise PrefsConfigError(f"missing configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
