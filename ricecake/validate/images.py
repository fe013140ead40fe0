from __future__ import annotations

from pathlib import Path

from ricecake.protocol.manifest import (
    ALLOWED_IMAGE_EXTENSIONS,
    IMAGES_DIRNAME,
    MAX_SINGLE_IMAGE_FILE,
    MIN_COVER_DIMENSION,
    ImageInfo,
    is_cover_image,
)

from .base import Category, CheckResult, Severity
from .context import ValidationContext
from .jpeg import read_jpeg_dimensions
from .sniff import sniff_file


C = Category.IMAGES


def _declared_cover(ctx: ValidationContext, name: str) -> ImageInfo | None:
    if ctx.manifest is None:
        return None
    cover = ctx.manifest.images.cover
    if Path(cover.filename).name != name:
        return None
    return cover


def _cover_checks(ctx: ValidationContext, path: Path) -> list[CheckResult]:
    name = path.name
    try:
        width, height = read_jpeg_dimensions(path)
    except (OSError, ValueError) as e:
        return [CheckResult.error(C, f"file {name} dimensions", f"cannot determine cover dimensions: {e}")]

    out: list[CheckResult] = []
    if width < MIN_COVER_DIMENSION or height < MIN_COVER_DIMENSION:
        out.append(
            CheckResult.warning(
                C,
                f"file {name} dimensions",
                f"cover is {width}x{height}; at least {MIN_COVER_DIMENSION}x{MIN_COVER_DIMENSION} is expected",
            )
        )

    declared = _declared_cover(ctx, name)
    if declared is not None and declared.width and declared.height:
        if (declared.width, declared.height) != (width, height):
            out.append(
                CheckResult.warning(
                    C,
                    f"file {name} declared dimensions",
                    f"manifest declares {declared.width}x{declared.height} but image is {width}x{height}",
                )
            )
    return out


def run(ctx: ValidationContext) -> list[CheckResult]:
    images_dir = ctx.root / IMAGES_DIRNAME
    if not images_dir.is_dir():
        return []

    try:
        entries = sorted(images_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        return [CheckResult.error(C, "readable", f"cannot read images directory: {e.strerror or e}")]

    out: list[CheckResult] = []
    for path in entries:
        if path.is_dir():
            continue

        name = path.name
        ext = path.suffix.lower()
        # README.txt helpers are allowed alongside images.
        if ext == ".txt":
            continue

        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            out.append(CheckResult.error(C, f"file {name}", f"file type {ext or '(none)'} not allowed"))
            continue

        try:
            size = path.stat().st_size
        except OSError as e:
            out.append(CheckResult.error(C, f"file {name}", f"cannot get file info: {e.strerror or e}"))
            continue

        if size > MAX_SINGLE_IMAGE_FILE:
            out.append(
                CheckResult.error(
                    C, f"file {name} size", f"file exceeds maximum size of {MAX_SINGLE_IMAGE_FILE // (1024 * 1024)} MB"
                )
            )
            continue

        problem = sniff_file(path, ext)
        if problem is not None:
            out.append(CheckResult.error(C, f"file {name} magic bytes", problem))
            continue

        if is_cover_image(name):
            cover_results = _cover_checks(ctx, path)
            out.extend(cover_results)
            if any(r.severity is Severity.ERROR for r in cover_results):
                continue

        out.append(CheckResult.ok(C, f"file {name}"))

    return out
