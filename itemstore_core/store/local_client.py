from __future__ import annotations

import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from itemstore_core.store.object_client import (
    DEFAULT_MAX_DELETE_BATCH,
    ListingPage,
    ObjectClient,
    ObjectSummary,
)

DEFAULT_PAGE_SIZE = 1000


@dataclass
class LocalObjectClient(ObjectClient):
    """A local filesystem store that mimics S3 listing semantics.

    Maps each object to ``root_dir / bucket / key``. Listings are key ordered
    and paginated with the last returned key as marker. User metadata and
    storage class are accepted but not persisted.
    """

    root_dir: Path
    page_size: int = DEFAULT_PAGE_SIZE
    max_delete_batch: int = DEFAULT_MAX_DELETE_BATCH

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.max_delete_batch < 1:
            raise ValueError("max_delete_batch must be >= 1")
        self.root_dir = Path(self.root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _bucket_root(self, bucket: str) -> Path:
        if not bucket or "/" in bucket or bucket in {".", ".."}:
            raise ValueError(f"Invalid bucket name: {bucket!r}")
        return self.root_dir / bucket

    def _to_path(self, bucket: str, key: str) -> Path:
        if not key:
            raise ValueError("key is required")
        bucket_root = self._bucket_root(bucket)
        path = bucket_root / key
        try:
            path.resolve().relative_to(bucket_root.resolve())
        except ValueError as exc:
            raise ValueError(f"Key escapes bucket root: {key}") from exc
        return path

    def _all_keys(self, bucket: str, prefix: str) -> list[str]:
        bucket_root = self._bucket_root(bucket)
        if not bucket_root.exists():
            return []
        keys: list[str] = []
        for file_path in bucket_root.rglob("*"):
            if not file_path.is_file():
                continue
            key = file_path.relative_to(bucket_root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def list_objects(self, bucket: str, prefix: str, marker: str | None = None) -> ListingPage:
        keys = self._all_keys(bucket, prefix)
        if marker is not None:
            keys = [key for key in keys if key > marker]

        page_keys = keys[: self.page_size]
        summaries = []
        for key in page_keys:
            stat = self._to_path(bucket, key).stat()
            summaries.append(
                ObjectSummary(
                    key=key,
                    size=stat.st_size,
                    last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        next_marker = page_keys[-1] if len(keys) > len(page_keys) else None
        return ListingPage(summaries=tuple(summaries), next_marker=next_marker)

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
        path = self._to_path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as handle:
            shutil.copyfileobj(body, handle)

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        return open(self._to_path(bucket, key), "rb")

    def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        if len(keys) > self.max_delete_batch:
            raise ValueError(
                f"delete_objects accepts at most {self.max_delete_batch} keys, got {len(keys)}"
            )
        for key in keys:
            self._to_path(bucket, key).unlink(missing_ok=True)

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        src_path = self._to_path(bucket, source_key)
        dest_path = self._to_path(bucket, dest_key)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src_path, dest_path)

    def object_exists(self, bucket: str, key: str) -> bool:
        return self._to_path(bucket, key).is_file()
