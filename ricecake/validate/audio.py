from __future__ import annotations

from ricecake.protocol.manifest import ALLOWED_AUDIO_EXTENSIONS, AUDIO_DIRNAME, MAX_SINGLE_AUDIO_FILE

from .base import Category, CheckResult
from .context import ValidationContext
from .sniff import sniff_file


C = Category.AUDIO


def run(ctx: ValidationContext) -> list[CheckResult]:
    audio_dir = ctx.root / AUDIO_DIRNAME
    if not audio_dir.is_dir():
        # Reported by the Structure checks.
        return []

    try:
        entries = sorted(audio_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        return [CheckResult.error(C, "readable", f"cannot read audio directory: {e.strerror or e}")]

    out: list[CheckResult] = []
    audio_count = 0
    for path in entries:
        if path.is_dir():
            continue

        name = path.name
        ext = path.suffix.lower()
        if ext not in ALLOWED_AUDIO_EXTENSIONS:
            out.append(CheckResult.error(C, f"file {name}", f"file type {ext or '(none)'} not allowed"))
            continue

        try:
            size = path.stat().st_size
        except OSError as e:
            out.append(CheckResult.error(C, f"file {name}", f"cannot get file info: {e.strerror or e}"))
            continue

        if size > MAX_SINGLE_AUDIO_FILE:
            out.append(
                CheckResult.error(
                    C, f"file {name} size", f"file exceeds maximum size of {MAX_SINGLE_AUDIO_FILE // (1024 * 1024)} MB"
                )
            )
            continue

        problem = sniff_file(path, ext)
        if problem is not None:
            out.append(CheckResult.error(C, f"file {name} magic bytes", problem))
            continue

        audio_count += 1
        out.append(CheckResult.ok(C, f"file {name}"))

    if audio_count == 0:
        out.append(CheckResult.error(C, "at least one audio file", "no valid audio files found"))

    return out
