from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path

from itemstore_core.profile import StorageProfile
from itemstore_core.settings import (
    StorageSettings,
    load_storage_settings,
    resolve_storage_settings,
)
from itemstore_core.store import LocalObjectClient


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--includes", type=str, default="**")
    parser.add_argument("--excludes", type=str, default=None)
    parser.add_argument("--no-default-excludes", action="store_true", default=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synchronize item files with an object store.")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--store", choices=["s3", "local"], default="s3")
    parser.add_argument("--local-root", type=Path, default=Path(".local_store"))
    parser.add_argument("--bucket", type=str, default=None)
    parser.add_argument("--prefix", type=str, default=None)
    parser.add_argument("--max-workers", type=int, default=None)

    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload-all", help="Upload a local tree under a path prefix.")
    upload.add_argument("path")
    upload.add_argument("source", type=Path)
    upload.add_argument("--storage-class", type=str, default=None)
    upload.add_argument("--sse", action="store_true", default=False)
    upload.add_argument("--metadata", action="append", default=[], metavar="KEY=VALUE")
    _add_filter_args(upload)

    download = sub.add_parser("download-all", help="Download a path prefix into a local tree.")
    download.add_argument("path")
    download.add_argument("target", type=Path)
    download.add_argument("--force", action="store_true", default=False)
    _add_filter_args(download)

    delete = sub.add_parser("delete", help="Delete every object under a path prefix.")
    delete.add_argument("path")

    rename = sub.add_parser("rename", help="Move every object from one path prefix to another.")
    rename.add_argument("old_path")
    rename.add_argument("new_path")

    exists = sub.add_parser("exists", help="Check whether an object exists.")
    exists.add_argument("path")
    return parser


def _resolve_settings(args: argparse.Namespace) -> StorageSettings:
    """Resolve env and YAML settings; explicit flags win over both."""

    env = dict(os.environ)
    # Env may lack a bucket when the flag supplies it.
    if args.bucket:
        env["ITEMSTORE_BUCKET"] = args.bucket
    if args.config:
        settings = load_storage_settings(args.config, env=env)
    else:
        settings = resolve_storage_settings(env)

    overrides: dict[str, object] = {}
    if args.bucket:
        overrides["bucket"] = args.bucket
    if args.prefix is not None:
        overrides["prefix"] = args.prefix
    if args.max_workers is not None:
        overrides["max_concurrency"] = args.max_workers
    return replace(settings, **overrides) if overrides else settings


def _parse_metadata(items: list[str]) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--metadata must be KEY=VALUE: {item}")
        metadata[key.strip()] = value
    return metadata


def _build_profile(args: argparse.Namespace, settings: StorageSettings) -> StorageProfile:
    if args.store == "local":
        client = LocalObjectClient(root_dir=args.local_root.resolve())
        return StorageProfile.from_settings(settings, client=client)
    return StorageProfile.from_settings(settings)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)

    settings = _resolve_settings(args)
    profile = _build_profile(args, settings)
    bucket = settings.bucket

    if args.command == "upload-all":
        count = profile.upload_all(
            bucket,
            args.path,
            args.source,
            includes=args.includes,
            excludes=args.excludes,
            use_default_excludes=not args.no_default_excludes,
            metadata=_parse_metadata(args.metadata) or None,
            storage_class=args.storage_class,
            server_side_encryption=bool(args.sse),
        )
        print(f"uploaded={count}")
    elif args.command == "download-all":
        count = profile.download_all(
            bucket,
            args.path,
            args.target,
            includes=args.includes,
            excludes=args.excludes,
            use_default_excludes=not args.no_default_excludes,
            only_if_newer=not args.force,
        )
        print(f"downloaded={count}")
    elif args.command == "delete":
        print(f"deleted={profile.delete(bucket, args.path)}")
    elif args.command == "rename":
        print(f"moved={profile.rename(bucket, args.old_path, args.new_path)}")
    elif args.command == "exists":
        found = profile.exists(bucket, args.path)
        print(f"exists={str(found).lower()}")
        return 0 if found else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
