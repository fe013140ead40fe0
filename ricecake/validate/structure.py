from __future__ import annotations

from ricecake.protocol.manifest import (
    AUDIO_DIRNAME,
    COPYRIGHT_FILENAME,
    IMAGES_DIRNAME,
    MANIFEST_FILENAME,
    is_primary_cover,
)

from .base import Category, CheckResult
from .context import ValidationContext


C = Category.STRUCTURE


def run(ctx: ValidationContext) -> list[CheckResult]:
    """Required top-level entries; each missing entry is its own error."""

    out: list[CheckResult] = []

    for name in (MANIFEST_FILENAME, COPYRIGHT_FILENAME):
        check = f"{name} exists"
        if (ctx.root / name).is_file():
            out.append(CheckResult.ok(C, check))
        else:
            out.append(CheckResult.error(C, check, f"{name} not found"))

    for name in (AUDIO_DIRNAME, IMAGES_DIRNAME):
        check = f"{name}/ directory exists"
        if (ctx.root / name).is_dir():
            out.append(CheckResult.ok(C, check))
        else:
            out.append(CheckResult.error(C, check, f"{name}/ directory not found"))

    images_dir = ctx.root / IMAGES_DIRNAME
    try:
        cover_found = images_dir.is_dir() and any(p.is_file() and is_primary_cover(p.name) for p in images_dir.iterdir())
    except OSError as e:
        out.append(CheckResult.error(C, "cover image exists", f"cannot list {IMAGES_DIRNAME}/: {e.strerror or e}"))
        return out
    if cover_found:
        out.append(CheckResult.ok(C, "cover image exists"))
    else:
        out.append(CheckResult.error(C, "cover image exists", f"cover.jpg not found in {IMAGES_DIRNAME}/"))

    return out
