"""Bounded-concurrency transfer execution."""

from itemstore_core.transfer.coordinator import (
    DEFAULT_MAX_CONCURRENCY,
    TransferCoordinator,
    perform_transfer,
)
from itemstore_core.transfer.tasks import TransferKind, TransferOutcome, TransferTask

__all__ = [
    "DEFAULT_MAX_CONCURRENCY",
    "TransferCoordinator",
    "TransferKind",
    "TransferOutcome",
    "TransferTask",
    "perform_transfer",
]
