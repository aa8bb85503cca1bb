"""Per-item object paths and the host lifecycle hooks (delete, rename)."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from itemstore_core.io.filters import PatternSpec
from itemstore_core.io.keys import DELIMITER
from itemstore_core.observability import log_event
from itemstore_core.profile import StorageProfile
from itemstore_core.settings import StorageSettings
from itemstore_core.store.object_client import ObjectClient

logger = logging.getLogger(__name__)


def _require_item(item: str) -> str:
    value = (item or "").strip().strip(DELIMITER)
    if not value:
        raise ValueError("item name is required")
    return value


@dataclass(frozen=True)
class ItemObjectPath:
    """An object (or object prefix) ``item/path`` in the configured bucket."""

    profile: StorageProfile
    bucket: str
    item: str
    path: str

    @property
    def key(self) -> str:
        return f"{self.item}{DELIMITER}{self.path}"

    def child(self, name: str) -> ItemObjectPath:
        return ItemObjectPath(self.profile, self.bucket, self.item, f"{self.path}{DELIMITER}{name}")

    def exists(self) -> bool:
        return self.profile.exists(self.bucket, self.key)

    def upload(
        self,
        source: str | Path,
        *,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> None:
        self.profile.upload(
            self.bucket,
            self.key,
            source,
            metadata=metadata,
            storage_class=storage_class,
            server_side_encryption=server_side_encryption,
        )

    def upload_all(
        self,
        source_root: str | Path,
        *,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        metadata: Mapping[str, str] | None = None,
        storage_class: str | None = None,
        server_side_encryption: bool = False,
    ) -> int:
        return self.profile.upload_all(
            self.bucket,
            self.key,
            source_root,
            includes=includes,
            excludes=excludes,
            use_default_excludes=use_default_excludes,
            metadata=metadata,
            storage_class=storage_class,
            server_side_encryption=server_side_encryption,
        )

    def download(self, target: str | Path) -> None:
        self.profile.download(self.bucket, self.key, target)

    def download_all(
        self,
        target_root: str | Path,
        *,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
        only_if_newer: bool = True,
    ) -> int:
        return self.profile.download_all(
            self.bucket,
            self.key,
            target_root,
            includes=includes,
            excludes=excludes,
            use_default_excludes=use_default_excludes,
            only_if_newer=only_if_newer,
        )


class ItemStorage:
    """Object-store backed storage for host items, configured once per instance."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        profile: StorageProfile | None = None,
        client: ObjectClient | None = None,
    ) -> None:
        self.settings = settings
        self.profile = profile or StorageProfile.from_settings(settings, client=client)

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    @staticmethod
    def key_root(item: str) -> str:
        """Delimiter-terminated root of an item, before the namespace prefix."""

        return _require_item(item) + DELIMITER

    def object_path(self, item: str, path: str) -> ItemObjectPath:
        return ItemObjectPath(self.profile, self.bucket, _require_item(item), path)

    def object_path_for_branch(self, item: str, path: str, branch: str) -> ItemObjectPath:
        """Object path of a sibling item named ``branch`` (same parent folder as item)."""

        parent = posixpath.dirname(_require_item(item))
        branch_item = f"{parent}{DELIMITER}{branch}" if parent else branch
        return ItemObjectPath(self.profile, self.bucket, _require_item(branch_item), path)

    def delete_item(self, item: str) -> int:
        return self.profile.delete(self.bucket, self.key_root(item))

    def rename_item(self, old_item: str, new_item: str) -> int:
        return self.profile.rename(self.bucket, self.key_root(old_item), self.key_root(new_item))


class ItemLifecycleListener:
    """Reacts to host item events; a listener without storage ignores them.

    Called synchronously by the host; errors propagate to it.
    """

    def __init__(self, storage: ItemStorage | None) -> None:
        self.storage = storage

    def on_deleted(self, item: str) -> int:
        if self.storage is None:
            return 0
        deleted = self.storage.delete_item(item)
        log_event(logger, "item.deleted", item=item, deleted=deleted)
        return deleted

    def on_renamed(self, old_item: str, new_item: str) -> int:
        if self.storage is None:
            return 0
        moved = self.storage.rename_item(old_item, new_item)
        log_event(logger, "item.renamed", old_item=old_item, new_item=new_item, moved=moved)
        return moved
