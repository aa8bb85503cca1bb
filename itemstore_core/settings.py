"""Storage profile configuration (env-first, YAML overrides)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from itemstore_core.errors import ConfigError
from itemstore_core.transfer.coordinator import DEFAULT_MAX_CONCURRENCY

URL_STYLES = {"path", "virtual", "auto"}


@dataclass(frozen=True)
class StorageSettings:
    bucket: str
    prefix: str | None = None
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    session_token: str | None = None
    use_ssl: bool | None = None
    url_style: str = "path"
    signature_version: str | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        if not self.bucket or not str(self.bucket).strip():
            raise ConfigError("bucket is required")
        if self.url_style not in URL_STYLES:
            raise ConfigError(f"url_style must be one of {sorted(URL_STYLES)}: {self.url_style}")
        if isinstance(self.max_concurrency, bool) or not isinstance(self.max_concurrency, int):
            raise ConfigError(f"max_concurrency must be an integer: {self.max_concurrency!r}")
        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be >= 1")


def _parse_bool(value: Any, *, default: bool | None = None) -> bool | None:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return default


def _parse_int(value: Any, *, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer: {value!r}") from exc


def _first(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _infer_ssl(use_ssl: bool | None, endpoint_url: str | None) -> bool | None:
    if use_ssl is not None or not endpoint_url:
        return use_ssl
    return endpoint_url.strip().lower().startswith("https://")


def _env_values(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {
        "bucket": _first(env, "ITEMSTORE_BUCKET", "S3_BUCKET_NAME"),
        "prefix": env.get("ITEMSTORE_PREFIX") or None,
        "region": _first(env, "S3_REGION", "AWS_REGION") or "us-east-1",
        "endpoint_url": _first(env, "S3_ENDPOINT_URL"),
        "access_key": _first(env, "S3_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
        "secret_key": _first(env, "S3_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"),
        "session_token": _first(env, "AWS_SESSION_TOKEN"),
        "use_ssl": _parse_bool(env.get("S3_USE_SSL")),
        "url_style": _first(env, "S3_URL_STYLE") or "path",
        "signature_version": _first(env, "S3_SIGNATURE_VERSION"),
    }
    concurrency = _first(env, "ITEMSTORE_MAX_CONCURRENCY")
    if concurrency is not None:
        values["max_concurrency"] = _parse_int(concurrency, name="ITEMSTORE_MAX_CONCURRENCY")
    return values


def _build(values: Mapping[str, Any]) -> StorageSettings:
    known = {f.name for f in fields(StorageSettings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown storage settings: {', '.join(unknown)}")
    kwargs = {k: v for k, v in values.items() if v is not None}
    if "bucket" not in kwargs:
        raise ConfigError("Missing storage bucket: set ITEMSTORE_BUCKET or S3_BUCKET_NAME")
    settings = StorageSettings(**kwargs)
    return replace(settings, use_ssl=_infer_ssl(settings.use_ssl, settings.endpoint_url))


def resolve_storage_settings(env: Mapping[str, str] | None = None) -> StorageSettings:
    """Resolve settings from environment variables."""

    env = dict(os.environ) if env is None else env
    return _build(_env_values(env))


def load_storage_settings(path: str | Path, env: Mapping[str, str] | None = None) -> StorageSettings:
    """Load settings from a YAML mapping; its keys override environment values."""

    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid storage settings file: {path}")

    env = dict(os.environ) if env is None else env
    values = _env_values(env)
    for key, value in data.items():
        if key == "use_ssl":
            value = _parse_bool(value)
        elif key == "max_concurrency" and value is not None:
            value = _parse_int(value, name="max_concurrency")
        values[str(key)] = value
    return _build(values)
