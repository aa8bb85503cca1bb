from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Protocol

DEFAULT_MAX_DELETE_BATCH = 1000


@dataclass(frozen=True)
class ObjectSummary:
    key: str
    size: int
    last_modified: datetime | None = None


@dataclass(frozen=True)
class ListingPage:
    summaries: tuple[ObjectSummary, ...]
    next_marker: str | None = None

    @property
    def is_truncated(self) -> bool:
        return self.next_marker is not None


class ObjectClient(Protocol):
    """Capability surface over an S3-compatible store.

    All keys are raw object keys within ``bucket``; prefixes use plain string
    prefix semantics (no directory inference). Implementations must be safe to
    share across worker threads.
    """

    max_delete_batch: int

    def list_objects(self, bucket: str, prefix: str, marker: str | None = None) -> ListingPage:
        """Return one page of objects under prefix, starting after marker.

        ``next_marker`` is set when more pages exist and is passed back verbatim.
        """

    def put_object(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        *,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> None:
        """Stream body into key (overwrite)."""

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Return a readable stream of the object content. Caller closes it."""

    def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        """Delete up to ``max_delete_batch`` keys in one request."""

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        """Server-side copy within bucket."""

    def object_exists(self, bucket: str, key: str) -> bool:
        """Return True when the object exists."""


def iter_pages(client: ObjectClient, bucket: str, prefix: str) -> Iterator[ListingPage]:
    """Lazily walk every listing page under prefix.

    Only restartable from the start: a new call issues a fresh first request.
    """

    marker: str | None = None
    while True:
        page = client.list_objects(bucket, prefix, marker)
        yield page
        if page.next_marker is None:
            return
        marker = page.next_marker
