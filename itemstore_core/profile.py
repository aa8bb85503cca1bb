from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from itemstore_core.io.filters import PatternSpec
from itemstore_core.io.keys import with_prefix
from itemstore_core.store.boto3_client import Boto3ObjectClient
from itemstore_core.store.object_client import ObjectClient
from itemstore_core.sync import SyncOperations
from itemstore_core.transfer.coordinator import DEFAULT_MAX_CONCURRENCY

if TYPE_CHECKING:
    from itemstore_core.settings import StorageSettings


class StorageProfile:
    """Host-facing facade: applies the namespace prefix and delegates to SyncOperations.

    Errors from the sync layer surface to the caller unchanged.
    """

    def __init__(
        self,
        client: ObjectClient,
        *,
        prefix: str | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        delete_batch_size: int | None = None,
    ) -> None:
        self._prefix = prefix
        self._ops = SyncOperations(
            client,
            max_concurrency=max_concurrency,
            delete_batch_size=delete_batch_size,
        )

    @classmethod
    def from_settings(
        cls,
        settings: StorageSettings,
        *,
        client: ObjectClient | None = None,
    ) -> StorageProfile:
        if client is None:
            client = Boto3ObjectClient(
                endpoint_url=settings.endpoint_url,
                access_key=settings.access_key,
                secret_key=settings.secret_key,
                region=settings.region,
                use_ssl=settings.use_ssl,
                url_style=settings.url_style,
                session_token=settings.session_token,
                signature_version=settings.signature_version,
                max_pool_connections=settings.max_concurrency,
            )
        return cls(client, prefix=settings.prefix, max_concurrency=settings.max_concurrency)

    @property
    def prefix(self) -> str | None:
        return self._prefix

    @property
    def operations(self) -> SyncOperations:
        return self._ops

    def with_prefix(self, path: str) -> str:
        return with_prefix(self._prefix, path)

    def exists(self, bucket: str, path: str) -> bool:
        return self._ops.exists(bucket, self.with_prefix(path))

    def upload(
        self,
        bucket: str,
        path: str,
        source: str | Path,
        *,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> None:
        self._ops.upload(
            source,
            bucket=bucket,
            key=self.with_prefix(path),
            metadata=metadata,
            storage_class=storage_class,
            server_side_encryption=server_side_encryption,
        )

    def upload_all(
        self,
        bucket: str,
        path: str,
        source_root: str | Path,
        *,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> int:
        return self._ops.upload_all(
            source_root,
            bucket=bucket,
            key_prefix=self.with_prefix(path),
            includes=includes,
            excludes=excludes,
            use_default_excludes=use_default_excludes,
            metadata=metadata,
            storage_class=storage_class,
            server_side_encryption=server_side_encryption,
        )

    def download(self, bucket: str, key: str, target: str | Path) -> None:
        self._ops.download(target, bucket=bucket, key=self.with_prefix(key))

    def download_all(
        self,
        bucket: str,
        path_prefix: str,
        target_root: str | Path,
        *,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        only_if_newer: bool = True,
    ) -> int:
        return self._ops.download_all(
            target_root,
            bucket=bucket,
            key_prefix=self.with_prefix(path_prefix),
            includes=includes,
            excludes=excludes,
            use_default_excludes=use_default_excludes,
            only_if_newer=only_if_newer,
        )

    def delete(self, bucket: str, path_prefix: str) -> int:
        return self._ops.delete_by_prefix(bucket, self.with_prefix(path_prefix))

    def rename(self, bucket: str, current_path_prefix: str, new_path_prefix: str) -> int:
        return self._ops.rename_by_prefix(
            bucket,
            self.with_prefix(current_path_prefix),
            self.with_prefix(new_path_prefix),
        )
