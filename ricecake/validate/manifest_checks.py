from __future__ import annotations

import re
from datetime import date
from pathlib import PurePosixPath

from ricecake.protocol.manifest import ALLOWED_AUDIO_EXTENSIONS, MANIFEST_FILENAME, MAX_TRACKS, Manifest

from .base import Category, CheckResult
from .context import ValidationContext


C = Category.MANIFEST

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FORMAT_NAMES = frozenset(ext.lstrip(".") for ext in ALLOWED_AUDIO_EXTENSIONS)


def _required(out: list[CheckResult], check: str, present: bool, message: str) -> None:
    if present:
        out.append(CheckResult.ok(C, check))
    else:
        out.append(CheckResult.error(C, check, message))


def _is_iso_date(s: str) -> bool:
    if _ISO_DATE_RE.match(s) is None:
        return False
    try:
        date.fromisoformat(s)
    except ValueError:
        return False
    return True


def _track_checks(m: Manifest) -> list[CheckResult]:
    out: list[CheckResult] = []
    if len(m.tracks) > MAX_TRACKS:
        out.append(CheckResult.error(C, "track count", f"at most {MAX_TRACKS} tracks are allowed (found {len(m.tracks)})"))

    seen: dict[int, int] = {}
    for i, track in enumerate(m.tracks):
        prefix = f"track[{i}]"
        if track.number <= 0:
            out.append(CheckResult.error(C, f"{prefix}.number", "track number is required and must be > 0"))
        elif track.number in seen:
            out.append(
                CheckResult.error(
                    C, f"{prefix}.number", f"track number {track.number} duplicates track[{seen[track.number]}]"
                )
            )
        else:
            seen[track.number] = i

        if not track.title:
            out.append(CheckResult.error(C, f"{prefix}.title", "track title is required"))

        if not track.filename:
            out.append(CheckResult.error(C, f"{prefix}.filename", "track filename is required"))
        elif PurePosixPath(track.filename).suffix.lower() in ALLOWED_AUDIO_EXTENSIONS:
            out.append(
                CheckResult.warning(
                    C, f"{prefix}.filename", f"track filename should be a stem without extension: {track.filename}"
                )
            )

        if track.duration and track.duration_seconds() is None:
            out.append(
                CheckResult.warning(C, f"{prefix}.duration", f"duration must be M:SS or H:MM:SS: {track.duration}")
            )
    return out


def _format_checks(m: Manifest) -> list[CheckResult]:
    out: list[CheckResult] = []
    for i, af in enumerate(m.audio_formats):
        check = f"audio_formats[{i}]"
        if af.format.lower() not in _FORMAT_NAMES:
            out.append(CheckResult.error(C, check, f"unknown audio format: {af.format!r}"))
        elif af.bitrate <= 0 and (af.bit_depth <= 0 or af.sample_rate <= 0):
            out.append(CheckResult.warning(C, check, "format should declare a bitrate or a bit_depth/sample_rate pair"))
    return out


def run(ctx: ValidationContext) -> list[CheckResult]:
    """Parse manifest.yaml and report every missing required field individually."""

    if not ctx.manifest_present:
        return [CheckResult.error(C, "readable", f"cannot read manifest: {MANIFEST_FILENAME} not found")]
    if ctx.manifest is None:
        return [CheckResult.error(C, "valid YAML syntax", ctx.manifest_error or "manifest could not be parsed")]

    m = ctx.manifest
    out: list[CheckResult] = [CheckResult.ok(C, "valid YAML syntax")]

    _required(out, "manifest_version present", m.manifest_version > 0, "manifest_version is required")
    _required(out, "release.title present", bool(m.release.title), "release.title is required")
    _required(out, "release.artist present", bool(m.release.artist), "release.artist is required")
    _required(out, "release.release_date present", bool(m.release.release_date), "release.release_date is required")
    if m.release.release_date and not _is_iso_date(m.release.release_date):
        out.append(
            CheckResult.warning(C, "release.release_date format", f"release date is not YYYY-MM-DD: {m.release.release_date}")
        )
    if not m.release.genre:
        out.append(CheckResult.warning(C, "release.genre present", "release.genre is recommended"))

    _required(out, "tracks present", len(m.tracks) > 0, "at least one track is required")
    out.extend(_track_checks(m))

    _required(out, "audio_formats present", len(m.audio_formats) > 0, "at least one audio format is required")
    out.extend(_format_checks(m))

    _required(out, "images.cover present", bool(m.images.cover.filename), "images.cover is required")
    _required(out, "rights.copyright_year present", m.rights.copyright_year > 0, "rights.copyright_year is required")
    _required(
        out, "rights.copyright_holder present", bool(m.rights.copyright_holder), "rights.copyright_holder is required"
    )
    if not m.rights.license:
        out.append(CheckResult.warning(C, "rights.license present", "rights.license is recommended"))
    _required(out, "bundle.bundle_id present", bool(m.bundle.bundle_id), "bundle.bundle_id is required")

    return out
