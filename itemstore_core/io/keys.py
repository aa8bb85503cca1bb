"""Object key composition shared by the write, list, delete and rename paths.

Keys are built as ``prefix + item_path + "/" + relative_path``. The namespace
prefix is concatenated verbatim (no separator is inserted), so a prefix meant
to act as a folder must carry its own trailing ``/``.

Inverse invariant: for any relative path,
``strip_item_prefix(p, i, to_key(p, i, r)) == r``. Callers must not pass item
paths that already end in the delimiter; the item root would then contain an
empty segment and sibling items could alias each other.
"""

from __future__ import annotations

from itemstore_core.errors import KeyMappingError

DELIMITER = "/"


def with_prefix(prefix: str | None, path: str) -> str:
    if prefix is None or not prefix.strip():
        return path
    return f"{prefix}{path}"


def ensure_trailing_delimiter(prefix: str) -> str:
    if not prefix or prefix.endswith(DELIMITER):
        return prefix
    return prefix + DELIMITER


def item_root(prefix: str | None, item_path: str) -> str:
    """Return the key-space root (delimiter terminated) of an item."""

    if not item_path:
        raise KeyMappingError("item_path is required")
    return with_prefix(prefix, item_path) + DELIMITER


def to_key(prefix: str | None, item_path: str, relative_path: str) -> str:
    if not relative_path:
        raise KeyMappingError("relative_path is required")
    return item_root(prefix, item_path) + relative_path


def relative_key(root: str, key: str) -> str:
    """Return the suffix of ``key`` after ``root`` using length arithmetic."""

    if not key.startswith(root):
        raise KeyMappingError(f"Key {key!r} is not under root {root!r}")
    return key[len(root) :]


def strip_item_prefix(prefix: str | None, item_path: str, key: str) -> str:
    return relative_key(item_root(prefix, item_path), key)


def rename_key(key: str, old_root: str, new_root: str) -> str:
    """Move ``key`` from ``old_root`` to ``new_root`` preserving the suffix verbatim."""

    return new_root + relative_key(old_root, key)
