"""Bulk synchronization between a local tree and a key prefix in an object store.

Each operation pages through the listing sequentially; only transfers run in
parallel. Client failures are translated into the package error taxonomy:
listing -> ListingError, delete/copy/exists -> StoreError, put/get ->
TransferError. Errors already in that taxonomy propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from datetime import datetime
from pathlib import Path

from itemstore_core.errors import (
    DirectoryError,
    ItemStoreError,
    ListingError,
    StoreError,
)
from itemstore_core.io.filters import PathFilter, PatternSpec
from itemstore_core.io.keys import ensure_trailing_delimiter, relative_key, rename_key
from itemstore_core.observability import log_event
from itemstore_core.store.object_client import ListingPage, ObjectClient, iter_pages
from itemstore_core.transfer.coordinator import (
    DEFAULT_MAX_CONCURRENCY,
    TransferCoordinator,
    perform_transfer,
)
from itemstore_core.transfer.tasks import TransferKind, TransferTask

logger = logging.getLogger(__name__)


def _require_prefix(prefix: str, *, name: str) -> str:
    if not prefix or not prefix.strip():
        raise ValueError(f"{name} is required")
    return prefix


def _chunks(keys: Sequence[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(keys), size):
        yield list(keys[start : start + size])


def _local_target(root: Path, relative_path: str) -> Path | None:
    """Map a key-derived relative path under root; None when it would escape root."""

    parts = relative_path.split("/")
    if any(part in {"", ".", ".."} for part in parts):
        return None
    target = root.joinpath(*parts)
    try:
        target.resolve().relative_to(root.resolve())
    except ValueError:
        return None
    return target


def _is_up_to_date(target: Path, last_modified: datetime | None) -> bool:
    if last_modified is None or not target.is_file():
        return False
    # Store timestamps carry whole seconds.
    return int(target.stat().st_mtime) >= int(last_modified.timestamp())


class SyncOperations:
    """UploadAll / DownloadAll / DeleteByPrefix / RenameByPrefix over one client."""

    def __init__(
        self,
        client: ObjectClient,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        delete_batch_size: int | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        client_limit = int(client.max_delete_batch)
        if delete_batch_size is None:
            delete_batch_size = client_limit
        if delete_batch_size < 1:
            raise ValueError("delete_batch_size must be >= 1")
        self.client = client
        self.max_concurrency = max_concurrency
        self.delete_batch_size = min(delete_batch_size, client_limit)

    # --- Listing ---

    def _pages(self, bucket: str, prefix: str) -> Iterator[ListingPage]:
        pages = iter_pages(self.client, bucket, prefix)
        while True:
            try:
                page = next(pages)
            except StopIteration:
                return
            except ItemStoreError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ListingError(
                    f"Failed to list s3://{bucket}/{prefix}: {exc}",
                    bucket=bucket,
                    prefix=prefix,
                ) from exc
            yield page

    # --- Single objects ---

    def exists(self, bucket: str, key: str) -> bool:
        try:
            return self.client.object_exists(bucket, key)
        except ItemStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StoreError(
                f"Failed to check s3://{bucket}/{key}: {exc}",
                bucket=bucket,
                operation="object_exists",
                keys=(key,),
            ) from exc

    def upload(
        self,
        source: str | Path,
        *,
        bucket: str,
        key: str,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> None:
        task = TransferTask(
            bucket=bucket,
            key=key,
            local_path=Path(source),
            metadata=metadata,
            storage_class=storage_class,
            server_side_encryption=server_side_encryption,
        )
        perform_transfer(self.client, TransferKind.UPLOAD, task)
        log_event(logger, "sync.upload", bucket=bucket, key=key)

    def download(self, target: str | Path, *, bucket: str, key: str) -> None:
        task = TransferTask(bucket=bucket, key=key, local_path=Path(target))
        perform_transfer(self.client, TransferKind.DOWNLOAD, task)
        log_event(logger, "sync.download", bucket=bucket, key=key)

    # --- Bulk operations ---

    def upload_all(
        self,
        root: str | Path,
        *,
        bucket: str,
        key_prefix: str,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> int:
        """Upload every selected file under root to ``key_prefix/<relative path>``.

        The selection is finite and fully queued, so every selected file is
        attempted even after a failure; the first failure is raised afterwards.

        Returns:
            Number of files uploaded.
        """

        _require_prefix(key_prefix, name="key_prefix")
        root_path = Path(root)
        selected = PathFilter(includes, excludes, use_default_excludes).select(root_path)
        key_root = ensure_trailing_delimiter(key_prefix)

        tasks = (
            TransferTask(
                bucket=bucket,
                key=key_root + rel,
                local_path=root_path.joinpath(*rel.split("/")),
                metadata=metadata,
                storage_class=storage_class,
                server_side_encryption=server_side_encryption,
            )
            for rel in selected
        )
        with TransferCoordinator(
            self.client,
            TransferKind.UPLOAD,
            max_concurrency=self.max_concurrency,
            stop_on_failure=False,
        ) as coordinator:
            outcome = coordinator.run(tasks)

        log_event(
            logger,
            "sync.upload_all",
            bucket=bucket,
            prefix=key_root,
            selected=len(selected),
            succeeded=outcome.succeeded,
            failed=outcome.failed,
        )
        outcome.raise_for_error()
        return outcome.succeeded

    def download_all(
        self,
        target_root: str | Path,
        *,
        bucket: str,
        key_prefix: str,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        only_if_newer: bool = True,
    ) -> int:
        """Download every object under ``key_prefix/`` whose relative path passes the filter.

        Filtering applies to the key with the prefix stripped, the same paths
        ``upload_all`` selected. Objects whose local copy is at least as new are
        skipped unless ``only_if_newer`` is False.

        Returns:
            Number of objects downloaded.
        """

        _require_prefix(key_prefix, name="key_prefix")
        path_filter = PathFilter(includes, excludes, use_default_excludes)
        target = Path(target_root)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryError(f"Failed to create directory: {target}", path=target) from exc
        if not target.is_dir():
            raise DirectoryError(f"Target is not a directory: {target}", path=target)

        key_root = ensure_trailing_delimiter(key_prefix)
        skipped = 0

        def _tasks() -> Iterator[TransferTask]:
            nonlocal skipped
            for page in self._pages(bucket, key_root):
                for summary in page.summaries:
                    rel = relative_key(key_root, summary.key)
                    if not rel or rel.endswith("/") or not path_filter.matches(rel):
                        continue
                    local_path = _local_target(target, rel)
                    if local_path is None:
                        logger.warning("Skipping key outside target root: %s", summary.key)
                        skipped += 1
                        continue
                    if only_if_newer and _is_up_to_date(local_path, summary.last_modified):
                        skipped += 1
                        continue
                    yield TransferTask(
                        bucket=bucket,
                        key=summary.key,
                        local_path=local_path,
                        last_modified=summary.last_modified,
                    )

        with TransferCoordinator(
            self.client,
            TransferKind.DOWNLOAD,
            max_concurrency=self.max_concurrency,
            stop_on_failure=True,
        ) as coordinator:
            outcome = coordinator.run(_tasks())

        log_event(
            logger,
            "sync.download_all",
            bucket=bucket,
            prefix=key_root,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
            skipped=skipped,
        )
        outcome.raise_for_error()
        return outcome.succeeded

    def delete_by_prefix(self, bucket: str, key_prefix: str) -> int:
        """Delete every object under key_prefix, one listing page at a time.

        Idempotent: an empty prefix range is a successful no-op.

        Returns:
            Number of keys deleted.
        """

        _require_prefix(key_prefix, name="key_prefix")
        deleted = 0
        batches = 0
        for page in self._pages(bucket, key_prefix):
            keys = [summary.key for summary in page.summaries]
            for chunk in _chunks(keys, self.delete_batch_size):
                self._delete_batch(bucket, chunk)
                deleted += len(chunk)
                batches += 1

        log_event(
            logger,
            "sync.delete_prefix",
            bucket=bucket,
            prefix=key_prefix,
            deleted=deleted,
            batches=batches,
        )
        return deleted

    def rename_by_prefix(self, bucket: str, old_prefix: str, new_prefix: str) -> int:
        """Move every object under old_prefix to new_prefix via copy then delete.

        Not atomic: an interruption leaves already processed objects under both
        prefixes and the rest only under old_prefix. No rollback is attempted.

        Returns:
            Number of objects moved.
        """

        _require_prefix(old_prefix, name="old_prefix")
        _require_prefix(new_prefix, name="new_prefix")
        if old_prefix == new_prefix:
            return 0
        # Overlapping prefixes would list moved keys again or overwrite pending sources.
        if new_prefix.startswith(old_prefix) or old_prefix.startswith(new_prefix):
            raise ValueError(f"Prefixes overlap: old_prefix={old_prefix!r} new_prefix={new_prefix!r}")

        moved = 0
        for page in self._pages(bucket, old_prefix):
            for summary in page.summaries:
                dest_key = rename_key(summary.key, old_prefix, new_prefix)
                self._copy(bucket, summary.key, dest_key)
                self._delete_batch(bucket, [summary.key])
                moved += 1

        log_event(
            logger,
            "sync.rename_prefix",
            bucket=bucket,
            old_prefix=old_prefix,
            new_prefix=new_prefix,
            moved=moved,
        )
        return moved

    def _delete_batch(self, bucket: str, keys: list[str]) -> None:
        try:
            self.client.delete_objects(bucket, keys)
        except ItemStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StoreError(
                f"Failed to delete {len(keys)} object(s) in {bucket}: {exc}",
                bucket=bucket,
                operation="delete_objects",
                keys=tuple(keys),
            ) from exc

    def _copy(self, bucket: str, source_key: str, dest_key: str) -> None:
        try:
            self.client.copy_object(bucket, source_key, dest_key)
        except ItemStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StoreError(
                f"Failed to copy s3://{bucket}/{source_key} to {dest_key}: {exc}",
                bucket=bucket,
                operation="copy_object",
                keys=(source_key, dest_key),
            ) from exc
