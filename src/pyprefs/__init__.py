"""pyprefs - Read and watch per-application player preference stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyprefs")
except PackageNotFoundError:
    __version__ = "0+local"
from pyprefs.accessor import PreferenceAccessor, create_backend
from pyprefs.config import PrefsConfig
from pyprefs.entries import HOST_KEY_PREFIXES, collect_entries, is_host_defined, partition_keys
from pyprefs.exceptions import (
    PrefsConfigError,
    PrefsError,
    StoreReadError,
    StoreUnavailableError,
)
from pyprefs.locator import detect_platform, locate_store
from pyprefs.models import (
    FloatValue,
    IntValue,
    KeyPartition,
    MonitorState,
    OsFamily,
    PreferenceEntry,
    PreferenceValue,
    StoreDescriptor,
    StoreKind,
    StringValue,
    SuppressionState,
    ValueType,
)
from pyprefs.monitor import ChangeMonitor, ChangeSignal, threadsafe_listener
from pyprefs.probe import INT_SENTINEL, STRING_SENTINEL, classify_and_read

__all__ = [
    "__version__",
    "HOST_KEY_PREFIXES",
    "INT_SENTINEL",
    "STRING_SENTINEL",
    "ChangeMonitor",
    "ChangeSignal",
    "FloatValue",
    "IntValue",
    "KeyPartition",
    "MonitorState",
    "OsFamily",
    "PreferenceAccessor",
    "PreferenceEntry",
    "PreferenceValue",
    "PrefsConfig",
    "PrefsConfigError",
    "PrefsError",
    "StoreDescriptor",
    "StoreKind",
    "StoreReadError",
    "StoreUnavailableError",
    "StringValue",
    "SuppressionState",
    "ValueType",
    "classify_and_read",
    "collect_entries",
    "create_backend",
    "detect_platform",
    "is_host_defined",
    "locate_store",
    "partition_keys",
    "threadsafe_listener",
]
