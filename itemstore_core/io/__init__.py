"""Local path filtering and object key mapping."""

from itemstore_core.io.filters import DEFAULT_EXCLUDES, PathFilter, select
from itemstore_core.io.keys import (
    item_root,
    relative_key,
    rename_key,
    strip_item_prefix,
    to_key,
    with_prefix,
)

__all__ = [
    "DEFAULT_EXCLUDES",
    "PathFilter",
    "item_root",
    "relative_key",
    "rename_key",
    "select",
    "strip_item_prefix",
    "to_key",
    "with_prefix",
]
