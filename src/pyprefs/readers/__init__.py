"""Store readers, one per platform backend."""

from pyprefs.readers.base import NullStoreReader, StoreReader
from pyprefs.readers.flat_file import FlatFileStoreReader
from pyprefs.readers.plist import PlistStoreReader
from pyprefs.readers.registry import RegistryStoreReader

__all__ = [
    "FlatFileStoreReader",
    "NullStoreReader",
    "PlistStoreReader",
    "RegistryStoreReader",
    "StoreReader",
]
