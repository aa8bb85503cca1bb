from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from itemstore_core.transfer.tasks import TransferKind, TransferOutcome


class ItemStoreError(Exception):
    """Base error for itemstore_core."""


class ConfigError(ItemStoreError, ValueError):
    """Raised when storage settings are missing or invalid."""


class PatternError(ItemStoreError, ValueError):
    """Raised when an include/exclude glob cannot be compiled."""


InvalidPatternError = PatternError


class DirectoryError(ItemStoreError):
    """Raised when a local root is missing, unreadable or cannot be created."""

    def __init__(self, message: str, *, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class KeyMappingError(ItemStoreError, ValueError):
    """Raised when an object key does not sit under the expected root."""


class TransferError(ItemStoreError):
    """A single object PUT/GET failed.

    The underlying exception is chained as ``__cause__``. When re-raised from a
    finished coordinator, ``outcome`` carries the aggregate counts.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str,
        kind: TransferKind | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.kind = kind
        self.outcome: TransferOutcome | None = None


class ListingError(ItemStoreError):
    """Listing a prefix failed; fatal to the whole operation."""

    def __init__(self, message: str, *, bucket: str, prefix: str) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.prefix = prefix


class StoreError(ItemStoreError):
    """A delete, copy or existence check against the store failed."""

    def __init__(
        self,
        message: str,
        *,
        bucket: str,
        operation: str,
        keys: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.operation = operation
        self.keys = keys

    @property
    def key(self) -> str | None:
        return self.keys[0] if self.keys else None
