from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from itemstore_core.errors import TransferError


class TransferKind(str, Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class TransferTask:
    """One local file <-> one object key."""

    bucket: str
    key: str
    local_path: Path
    metadata: Mapping[str, str] | None = None
    storage_class: str | None = None
    server_side_encryption: bool = False
    last_modified: datetime | None = None


@dataclass
class TransferOutcome:
    """Aggregate result of one coordinator run.

    Only the owning coordinator mutates an outcome, under its lock.
    """

    kind: TransferKind
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    first_error: TransferError | None = None

    @property
    def ok(self) -> bool:
        return self.first_error is None

    def raise_for_error(self) -> None:
        if self.first_error is None:
            return
        self.first_error.outcome = self
        raise self.first_error
