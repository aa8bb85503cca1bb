from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, BinaryIO

from itemstore_core.errors import StoreError
from itemstore_core.store.object_client import (
    DEFAULT_MAX_DELETE_BATCH,
    ListingPage,
    ObjectClient,
    ObjectSummary,
)

DEFAULT_MAX_POOL_CONNECTIONS = 10
_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None) or {}
    error = response.get("Error") or {}
    return str(error.get("Code") or "")


class Boto3ObjectClient(ObjectClient):
    """S3/MinIO adapter using boto3."""

    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        use_ssl: bool | None = None,
        url_style: str = "path",
        session_token: str | None = None,
        signature_version: str | None = None,
        max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
        page_size: int | None = None,
        client: Any | None = None,
        client_kwargs: dict[str, Any] | None = None,
    ) -> None:
        self.max_delete_batch = DEFAULT_MAX_DELETE_BATCH
        self.page_size = page_size

        try:
            import boto3
            from boto3.s3.transfer import TransferConfig
            from botocore.config import Config
        except Exception as exc:  # noqa: BLE001
            raise RuntimeError("boto3 is required for Boto3ObjectClient") from exc

        # Each coordinator worker runs one managed transfer; boto3 must not add its own threads.
        self.transfer_config = TransferConfig(use_threads=False)
        if client is not None:
            self._client = client
            return

        if use_ssl is None:
            use_ssl = bool(endpoint_url and endpoint_url.startswith("https://"))

        config_kwargs: dict[str, Any] = {
            "s3": {"addressing_style": url_style},
            "max_pool_connections": max_pool_connections,
        }
        if signature_version:
            config_kwargs["signature_version"] = signature_version

        kwargs: dict[str, Any] = dict(client_kwargs or {})
        kwargs.update(
            dict(
                service_name="s3",
                endpoint_url=endpoint_url,
                region_name=region,
                use_ssl=use_ssl,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                aws_session_token=session_token,
                config=Config(**config_kwargs),
            )
        )
        self._client = boto3.client(**kwargs)

    def list_objects(self, bucket: str, prefix: str, marker: str | None = None) -> ListingPage:
        request: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if marker:
            request["ContinuationToken"] = marker
        if self.page_size:
            request["MaxKeys"] = self.page_size

        response = self._client.list_objects_v2(**request)
        summaries = tuple(
            ObjectSummary(
                key=obj["Key"],
                size=int(obj.get("Size") or 0),
                last_modified=obj.get("LastModified"),
            )
            for obj in response.get("Contents", []) or []
            if obj.get("Key")
        )
        next_marker = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListingPage(summaries=summaries, next_marker=next_marker or None)

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
        extra_args: dict[str, Any] = {}
        if metadata:
            extra_args["Metadata"] = dict(metadata)
        if storage_class:
            extra_args["StorageClass"] = storage_class
        if server_side_encryption:
            extra_args["ServerSideEncryption"] = "AES256"
        # upload_fileobj streams and switches to multipart for large bodies.
        self._client.upload_fileobj(
            body,
            bucket,
            key,
            ExtraArgs=extra_args or None,
            Config=self.transfer_config,
        )

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        response = self._client.get_object(Bucket=bucket, Key=key)
        return response["Body"]

    def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        if not keys:
            return
        if len(keys) > self.max_delete_batch:
            raise ValueError(
                f"delete_objects accepts at most {self.max_delete_batch} keys, got {len(keys)}"
            )
        response = self._client.delete_objects(
            Bucket=bucket,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
        )
        errors = (response or {}).get("Errors") or []
        if errors:
            failed = tuple(str(err.get("Key")) for err in errors)
            first = errors[0]
            raise StoreError(
                f"Failed to delete {len(failed)} object(s) in {bucket}: "
                f"{first.get('Code')} {first.get('Message')}",
                bucket=bucket,
                operation="delete_objects",
                keys=failed,
            )

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        # Managed copy handles objects above the single-request copy limit.
        self._client.copy(
            {"Bucket": bucket, "Key": source_key},
            bucket,
            dest_key,
            Config=self.transfer_config,
        )

    def object_exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except Exception as exc:  # noqa: BLE001
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise
