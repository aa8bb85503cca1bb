"""Integration fixtures against a real MinIO/S3 endpoint.

Set ``ITEMSTORE_INTEGRATION=1`` to run them.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import ClientError

from itemstore_core.profile import StorageProfile
from itemstore_core.settings import StorageSettings


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("ITEMSTORE_INTEGRATION", "").strip() == "1":
        return
    skip = pytest.mark.skip(reason="set ITEMSTORE_INTEGRATION=1 to run against MinIO")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def integration_settings() -> StorageSettings:
    return StorageSettings(
        bucket=os.getenv("S3_BUCKET_NAME", "itemstore-it"),
        prefix="_integration/",
        endpoint_url=os.getenv("S3_ENDPOINT", "http://localhost:9000"),
        access_key=os.getenv("S3_ACCESS_KEY", "minioadmin"),
        secret_key=os.getenv("S3_SECRET_KEY", "minioadmin"),
        region=os.getenv("S3_REGION", "us-east-1"),
        use_ssl=False,
        url_style="path",
        max_concurrency=4,
    )


@pytest.fixture(scope="session")
def minio_client(integration_settings: StorageSettings) -> Generator[object, None, None]:
    """Raw boto3 client used to prepare the bucket."""

    # Fail fast when MinIO is unreachable instead of retrying for minutes.
    client = boto3.client(
        "s3",
        endpoint_url=integration_settings.endpoint_url,
        aws_access_key_id=integration_settings.access_key,
        aws_secret_access_key=integration_settings.secret_key,
        region_name=integration_settings.region,
        config=Config(
            connect_timeout=float(os.getenv("S3_CONNECT_TIMEOUT", "2")),
            read_timeout=float(os.getenv("S3_READ_TIMEOUT", "5")),
            retries={"max_attempts": int(os.getenv("S3_MAX_ATTEMPTS", "2"))},
        ),
    )

    try:
        client.head_bucket(Bucket=integration_settings.bucket)
    except ClientError as error:
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in {"404", "NoSuchBucket"}:
            client.create_bucket(Bucket=integration_settings.bucket)
        else:
            raise

    yield client


@pytest.fixture()
def profile(minio_client, integration_settings: StorageSettings) -> Generator[StorageProfile, None, None]:
    profile = StorageProfile.from_settings(integration_settings)
    profile.delete(integration_settings.bucket, "")
    yield profile
    profile.delete(integration_settings.bucket, "")
