from __future__ import annotations

import os
from pathlib import Path

from ricecake.core.jail import has_parent_segment, normalize_bundle_rel
from ricecake.protocol.manifest import (
    ALL_ALLOWED_EXTENSIONS,
    ALLOWED_TEXT_EXTENSIONS,
    MAX_FILES,
    MAX_SINGLE_TEXT_FILE,
    MAX_TOTAL_BUNDLE_SIZE,
)

from .base import Category, CheckResult
from .context import ValidationContext


C = Category.SECURITY


def _unsupported_name(rel: str) -> str | None:
    """Return why a name could not be packed and unpacked unchanged, or None."""

    try:
        normalize_bundle_rel(rel)
    except ValueError as e:
        return str(e)
    return None


def run(ctx: ValidationContext) -> list[CheckResult]:
    """Walk every entry under the root and reject anything outside the allow-list.

    Independent of the Structure/Audio/Images checks on purpose: this is the
    final gate against arbitrary file inclusion, including liner-notes/.
    """

    out: list[CheckResult] = []
    walk_errors: list[OSError] = []
    file_count = 0
    total_size = 0

    for dirpath, dirnames, filenames in os.walk(ctx.root, onerror=walk_errors.append, followlinks=False):
        dirnames.sort()
        filenames.sort()
        base = Path(dirpath)

        for name in list(dirnames):
            p = base / name
            rel = p.relative_to(ctx.root).as_posix()
            reason = _unsupported_name(rel)
            if has_parent_segment(rel):
                out.append(CheckResult.error(C, f"path {rel}", "path traversal detected"))
                dirnames.remove(name)
            elif reason is not None:
                out.append(CheckResult.error(C, f"path {rel}", f"unsupported path: {reason}"))
                dirnames.remove(name)
            elif p.is_symlink():
                out.append(CheckResult.error(C, f"path {rel}", "symbolic links not allowed"))
                dirnames.remove(name)

        for name in filenames:
            p = base / name
            rel = p.relative_to(ctx.root).as_posix()

            if has_parent_segment(rel):
                out.append(CheckResult.error(C, f"path {rel}", "path traversal detected"))
                continue
            reason = _unsupported_name(rel)
            if reason is not None:
                out.append(CheckResult.error(C, f"path {rel}", f"unsupported path: {reason}"))
                continue
            if p.is_symlink():
                out.append(CheckResult.error(C, f"file {rel}", "symbolic links not allowed"))
                continue
            if name.startswith("."):
                out.append(CheckResult.error(C, f"file {rel}", "hidden files not allowed"))
                continue

            ext = p.suffix.lower()
            if not ext:
                out.append(CheckResult.error(C, f"file {rel}", "files must have extensions"))
                continue
            if ext not in ALL_ALLOWED_EXTENSIONS:
                out.append(CheckResult.error(C, f"file {rel}", f"file type {ext} not allowed"))
                continue

            try:
                size = p.stat().st_size
            except OSError as e:
                out.append(CheckResult.error(C, f"file {rel}", f"cannot get file info: {e.strerror or e}"))
                continue

            file_count += 1
            total_size += size
            if ext in ALLOWED_TEXT_EXTENSIONS and size > MAX_SINGLE_TEXT_FILE:
                out.append(
                    CheckResult.error(
                        C, f"file {rel} size", f"text file exceeds maximum size of {MAX_SINGLE_TEXT_FILE // 1024} KB"
                    )
                )

    for e in walk_errors:
        out.append(CheckResult.error(C, "file scan", f"error scanning files: {e.strerror or e}: {e.filename}"))

    if file_count > MAX_FILES:
        out.append(CheckResult.error(C, "file count", f"bundle contains {file_count} files; at most {MAX_FILES} allowed"))
    if total_size > MAX_TOTAL_BUNDLE_SIZE:
        out.append(
            CheckResult.error(
                C, "bundle size", f"bundle exceeds maximum size of {MAX_TOTAL_BUNDLE_SIZE // (1024 ** 3)} GB"
            )
        )

    if not out:
        out.append(CheckResult.ok(C, "file scan"))
    return out
