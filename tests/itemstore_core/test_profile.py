from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from itemstore_core.profile import StorageProfile
from itemstore_core.settings import StorageSettings
from itemstore_core.store.boto3_client import Boto3ObjectClient
from itemstore_core.testing.local_store import LocalS3StyleClient

BUCKET = "bucket"


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def test_profile_applies_namespace_prefix_to_every_operation(tmp_path: Path) -> None:
    client = LocalS3StyleClient(tmp_path / "store")
    profile = StorageProfile(client, prefix="jenkins/")
    source = tmp_path / "ws"
    _write(source / "a.txt", b"a")
    _write(source / "sub" / "b.txt", b"b")

    assert profile.upload_all(BUCKET, "folder/job/ws", source) == 2
    assert client.keys(BUCKET) == ["jenkins/folder/job/ws/a.txt", "jenkins/folder/job/ws/sub/b.txt"]
    assert profile.exists(BUCKET, "folder/job/ws/a.txt")

    target = tmp_path / "single.txt"
    profile.download(BUCKET, "folder/job/ws/sub/b.txt", target)
    assert target.read_bytes() == b"b"

    assert profile.rename(BUCKET, "folder/job/", "folder/renamed/") == 2
    assert client.keys(BUCKET) == [
        "jenkins/folder/renamed/ws/a.txt",
        "jenkins/folder/renamed/ws/sub/b.txt",
    ]

    restored = tmp_path / "restored"
    assert profile.download_all(BUCKET, "folder/renamed/ws", restored) == 2
    assert (restored / "sub" / "b.txt").read_bytes() == b"b"

    assert profile.delete(BUCKET, "folder/renamed/") == 2
    assert client.keys(BUCKET) == []


def test_profile_without_prefix_uses_paths_verbatim(tmp_path: Path) -> None:
    client = LocalS3StyleClient(tmp_path / "store")
    source = tmp_path / "one.txt"
    source.write_bytes(b"1")

    profile = StorageProfile(client, prefix="  ")
    profile.upload(BUCKET, "item/one.txt", source, metadata={"k": "v"})

    assert client.keys(BUCKET) == ["item/one.txt"]
    assert profile.with_prefix("x") == "x"


def test_from_settings_uses_injected_client(tmp_path: Path) -> None:
    client = LocalS3StyleClient(tmp_path / "store")
    settings = StorageSettings(bucket=BUCKET, prefix="ns/", max_concurrency=4)

    profile = StorageProfile.from_settings(settings, client=client)

    assert profile.prefix == "ns/"
    assert profile.operations.max_concurrency == 4
    assert profile.operations.client is client


def test_from_settings_builds_boto3_client() -> None:
    settings = StorageSettings(
        bucket=BUCKET,
        endpoint_url="http://minio:9000",
        region="eu-west-1",
        max_concurrency=6,
    )

    with patch("boto3.client") as boto3_client:
        profile = StorageProfile.from_settings(settings)

    assert isinstance(profile.operations.client, Boto3ObjectClient)
    kwargs = boto3_client.call_args.kwargs
    assert kwargs["endpoint_url"] == "http://minio:9000"
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["config"].max_pool_connections == 6
