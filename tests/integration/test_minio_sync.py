from __future__ import annotations

from pathlib import Path

import pytest

from itemstore_core.item_storage import ItemLifecycleListener, ItemStorage
from itemstore_core.profile import StorageProfile
from itemstore_core.settings import StorageSettings

pytestmark = pytest.mark.integration


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def test_upload_download_round_trip(
    profile: StorageProfile, integration_settings: StorageSettings, tmp_path: Path
) -> None:
    bucket = integration_settings.bucket
    source = tmp_path / "ws"
    for idx in range(12):
        _write(source / f"dir{idx % 3}" / f"f{idx}.txt", f"payload-{idx}".encode())
    _write(source / ".git" / "HEAD", b"ref")

    uploaded = profile.upload_all(
        bucket, "folder/job/ws", source, metadata={"build": "1"}, server_side_encryption=True
    )
    assert uploaded == 12
    assert profile.exists(bucket, "folder/job/ws/dir0/f0.txt")
    assert not profile.exists(bucket, "folder/job/ws/.git/HEAD")

    target = tmp_path / "restored"
    assert profile.download_all(bucket, "folder/job/ws", target, includes="dir1/") == 4
    assert (target / "dir1" / "f1.txt").read_bytes() == b"payload-1"
    assert not (target / "dir0").exists()


def test_item_lifecycle_against_minio(
    profile: StorageProfile, integration_settings: StorageSettings, tmp_path: Path
) -> None:
    bucket = integration_settings.bucket
    storage = ItemStorage(integration_settings, profile=profile)
    source = tmp_path / "ws"
    for idx in range(5):
        _write(source / f"f{idx}.txt", b"x")

    storage.object_path("folder/project", "ws").upload_all(source)
    storage.object_path("folder/project2", "ws").upload_all(source)
    listener = ItemLifecycleListener(storage)

    assert listener.on_renamed("folder/project", "folder/renamed") == 5
    assert profile.exists(bucket, "folder/renamed/ws/f0.txt")
    assert not profile.exists(bucket, "folder/project/ws/f0.txt")

    assert listener.on_deleted("folder/renamed") == 5
    assert profile.exists(bucket, "folder/project2/ws/f0.txt")
