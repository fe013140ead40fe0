from __future__ import annotations

from pathlib import Path


def normalize_bundle_rel(rel: str, *, allow_backslashes: bool = False) -> str:
    """Normalize a bundle-relative path to POSIX separators and reject escapes."""

    if not isinstance(rel, str) or not rel:
        raise ValueError("path missing/empty")
    if "\x00" in rel:
        raise ValueError("path contains NUL")

    s = rel
    if "\\" in s:
        if not allow_backslashes:
            raise ValueError("path must use '/' separators")
        s = s.replace("\\", "/")

    if s.startswith("/"):
        raise ValueError("absolute paths are not allowed")
    if len(s) >= 2 and s[1] == ":":
        raise ValueError("drive-qualified paths are not allowed")

    parts = [p for p in s.split("/") if p]
    if not parts:
        raise ValueError("empty path not allowed")
    if any(p in (".", "..") for p in parts):
        raise ValueError("path must not contain '.' or '..' segments")
    return "/".join(parts)


def has_parent_segment(rel: str) -> bool:
    return any(part == ".." for part in rel.replace("\\", "/").split("/"))


def ensure_within_root(root: Path, target: Path) -> None:
    root_resolved = root.resolve()
    target_resolved = target.resolve()
    if root_resolved not in target_resolved.parents and root_resolved != target_resolved:
        raise ValueError("Resolved path escapes destination root")
