"""Ant-style include/exclude selection of files under a local root."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

from itemstore_core.errors import DirectoryError, PatternError

PatternSpec = str | Iterable[str] | None

DEFAULT_EXCLUDES: tuple[str, ...] = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn",
    "**/.svn/**",
    "**/.DS_Store",
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
)


def split_patterns(spec: PatternSpec) -> list[str]:
    """Split a comma separated pattern string (or an iterable of them) into patterns."""

    if spec is None:
        return []
    raw = spec.split(",") if isinstance(spec, str) else list(spec)
    patterns: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            raise PatternError(f"Pattern must be a string: {item!r}")
        for part in item.split(","):
            text = part.strip()
            if text:
                patterns.append(text)
    return patterns


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    for char in segment:
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(char))
    return "".join(out)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile one Ant-style glob into a regex matched against POSIX relative paths.

    ``*`` and ``?`` never cross ``/``; a ``**`` segment spans zero or more
    directories; a trailing ``/`` is shorthand for ``/**``.
    """

    if "\x00" in pattern:
        raise PatternError(f"Pattern contains NUL: {pattern!r}")
    normalized = pattern.replace("\\", "/")
    if normalized.endswith("/"):
        normalized += "**"

    segments: list[str] = []
    for segment in normalized.split("/"):
        if segment in {"", "."}:
            continue
        if segment == "..":
            raise PatternError(f"Pattern may not leave the root: {pattern!r}")
        if segment == "**" and segments and segments[-1] == "**":
            continue
        segments.append(segment)
    if not segments:
        raise PatternError(f"Empty pattern: {pattern!r}")

    parts: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]+/)*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))

    try:
        return re.compile("".join(parts))
    except re.error as exc:
        raise PatternError(f"Invalid pattern {pattern!r}: {exc}") from exc


class PathFilter:
    """Decides which root-relative file paths take part in a transfer."""

    def __init__(
        self,
        includes: PatternSpec = "**",
        excludes: PatternSpec = None,
        use_default_excludes: bool = True,
    ) -> None:
        include_patterns = split_patterns(includes) or ["**"]
        exclude_patterns = split_patterns(excludes)
        if use_default_excludes:
            exclude_patterns.extend(DEFAULT_EXCLUDES)

        self.includes = tuple(include_patterns)
        self.excludes = tuple(exclude_patterns)
        self.use_default_excludes = use_default_excludes
        self._include_res = [compile_pattern(p) for p in include_patterns]
        self._exclude_res = [compile_pattern(p) for p in exclude_patterns]

    def matches(self, relative_path: str) -> bool:
        path = relative_path.replace("\\", "/").lstrip("/")
        if not path:
            return False
        if not any(rx.fullmatch(path) for rx in self._include_res):
            return False
        return not any(rx.fullmatch(path) for rx in self._exclude_res)

    def select(self, root: str | Path) -> list[str]:
        """Return sorted POSIX relative paths of the regular files under ``root`` that match."""

        root_path = Path(root)
        if not root_path.is_dir():
            raise DirectoryError(f"Source directory does not exist: {root_path}", path=root_path)
        try:
            resolved_root = root_path.resolve(strict=True)
            with os.scandir(root_path):
                pass
        except OSError as exc:
            raise DirectoryError(f"Cannot read source directory: {root_path}", path=root_path) from exc

        selected: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root_path):
            dirnames.sort()
            for name in filenames:
                file_path = Path(dirpath) / name
                if not file_path.is_file():
                    continue
                if not _is_within(file_path.resolve(), resolved_root):
                    continue
                rel = file_path.relative_to(root_path).as_posix()
                if self.matches(rel):
                    selected.append(rel)
        return sorted(selected)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def select(
    root: str | Path,
    includes: PatternSpec = "**",
    excludes: PatternSpec = None,
    use_default_excludes: bool = True,
) -> list[str]:
    return PathFilter(includes, excludes, use_default_excludes).select(root)
