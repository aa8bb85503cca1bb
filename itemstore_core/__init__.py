"""Stable public imports for `itemstore_core`.

Prefer importing from these symbols when wiring a host application.
Lower-level utilities should be imported from their submodules explicitly.
"""

from itemstore_core.errors import (
    ConfigError,
    DirectoryError,
    InvalidPatternError,
    ItemStoreError,
    KeyMappingError,
    ListingError,
    PatternError,
    StoreError,
    TransferError,
)
from itemstore_core.io.filters import PathFilter
from itemstore_core.item_storage import ItemLifecycleListener, ItemObjectPath, ItemStorage
from itemstore_core.profile import StorageProfile
from itemstore_core.settings import StorageSettings, load_storage_settings, resolve_storage_settings
from itemstore_core.store import Boto3ObjectClient, LocalObjectClient, ObjectClient
from itemstore_core.sync import SyncOperations
from itemstore_core.transfer import TransferCoordinator, TransferKind, TransferOutcome, TransferTask

__all__ = [
    "Boto3ObjectClient",
    "ConfigError",
    "DirectoryError",
    "InvalidPatternError",
    "ItemLifecycleListener",
    "ItemObjectPath",
    "ItemStorage",
    "ItemStoreError",
    "KeyMappingError",
    "ListingError",
    "LocalObjectClient",
    "ObjectClient",
    "PathFilter",
    "PatternError",
    "StorageProfile",
    "StorageSettings",
    "StoreError",
    "SyncOperations",
    "TransferCoordinator",
    "TransferError",
    "TransferKind",
    "TransferOutcome",
    "TransferTask",
    "load_storage_settings",
    "resolve_storage_settings",
]
