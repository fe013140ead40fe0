"""Schema model for manifest.yaml plus the static allow-lists and limits.

The parser is deliberately lenient about *missing* keys (they take empty or
zero defaults) so the validator can report every absent field on its own,
and strict about *shape* (a mapping where a list is expected is a parse
failure).
"""

from __future__ import annotations

import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from ricecake.core.errors import ArchiveError, BundleIOError, ManifestError


MANIFEST_FILENAME = "manifest.yaml"
COPYRIGHT_FILENAME = "copyright.txt"
SIGNATURE_FILENAME = "signature.sig"
AUDIO_DIRNAME = "audio"
IMAGES_DIRNAME = "images"
LINER_NOTES_DIRNAME = "liner-notes"
ARCHIVE_EXTENSION = ".ricecake"

ALLOWED_AUDIO_EXTENSIONS = frozenset({".mp3", ".flac", ".ogg", ".wav"})
ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg"})
ALLOWED_TEXT_EXTENSIONS = frozenset({".txt", ".yaml", ".yml"})
ALLOWED_SIGNATURE_EXTENSIONS = frozenset({".sig"})
ALL_ALLOWED_EXTENSIONS = (
    ALLOWED_AUDIO_EXTENSIONS | ALLOWED_IMAGE_EXTENSIONS | ALLOWED_TEXT_EXTENSIONS | ALLOWED_SIGNATURE_EXTENSIONS
)

MAX_SINGLE_AUDIO_FILE = 200 * 1024 * 1024
MAX_SINGLE_IMAGE_FILE = 20 * 1024 * 1024
MAX_SINGLE_TEXT_FILE = 100 * 1024
MAX_COPYRIGHT_FILE = 10 * 1024
MAX_TOTAL_BUNDLE_SIZE = 2 * 1024 * 1024 * 1024
MAX_TRACKS = 99
MAX_FILES = 500
MIN_COVER_DIMENSION = 1400

_DURATION_RE = re.compile(r"^(?:(\d+):([0-5]\d)|(\d+):([0-5]\d):([0-5]\d))$")


@dataclass(frozen=True)
class Release:
    title: str = ""
    artist: str = ""
    release_date: str = ""
    genre: str = ""
    subgenre: str = ""
    catalog_number: str = ""


@dataclass(frozen=True)
class Track:
    number: int = 0
    title: str = ""
    filename: str = ""
    duration: str = ""
    composers: tuple[str, ...] = ()
    performers: tuple[str, ...] = ()

    def duration_seconds(self) -> int | None:
        """Return the duration in seconds, or None when absent or malformed."""

        m = _DURATION_RE.match(self.duration or "")
        if m is None:
            return None
        if m.group(1) is not None:
            return int(m.group(1)) * 60 + int(m.group(2))
        return int(m.group(3)) * 3600 + int(m.group(4)) * 60 + int(m.group(5))


@dataclass(frozen=True)
class AudioFormat:
    format: str = ""
    bitrate: int = 0
    bit_depth: int = 0
    sample_rate: int = 0

    def describe(self) -> str:
        name = self.format.upper()
        if self.bitrate > 0:
            return f"{name} ({self.bitrate} kbps)"
        if self.bit_depth > 0:
            return f"{name} ({self.bit_depth}-bit/{self.sample_rate}Hz)"
        return name


@dataclass(frozen=True)
class ImageInfo:
    filename: str = ""
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class Images:
    cover: ImageInfo = field(default_factory=ImageInfo)
    cover_large: ImageInfo | None = None
    back: ImageInfo | None = None
    artist: ImageInfo | None = None


@dataclass(frozen=True)
class Rights:
    copyright_year: int = 0
    copyright_holder: str = ""
    license: str = ""
    contact: str = ""


@dataclass(frozen=True)
class BundleMeta:
    created_by: str = ""
    created_at: str = ""
    bundle_id: str = ""


@dataclass(frozen=True)
class Manifest:
    manifest_version: int = 0
    release: Release = field(default_factory=Release)
    tracks: tuple[Track, ...] = ()
    audio_formats: tuple[AudioFormat, ...] = ()
    images: Images = field(default_factory=Images)
    rights: Rights = field(default_factory=Rights)
    bundle: BundleMeta = field(default_factory=BundleMeta)

    def total_duration(self) -> str:
        total = 0
        for track in self.tracks:
            seconds = track.duration_seconds()
            if seconds is not None:
                total += seconds
        if total == 0:
            return ""
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"


def is_cover_image(name: str) -> bool:
    """Any allowed image whose name starts with "cover" (cover.jpg, Cover-Large.JPEG)."""

    p = Path(name)
    return p.name.lower().startswith("cover") and p.suffix.lower() in ALLOWED_IMAGE_EXTENSIONS


def is_primary_cover(name: str) -> bool:
    p = Path(name)
    return p.stem.lower() == "cover" and p.suffix.lower() in ALLOWED_IMAGE_EXTENSIONS


def format_size(num_bytes: int) -> str:
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    if num_bytes >= gb:
        return f"{num_bytes / gb:.2f} GB"
    if num_bytes >= mb:
        return f"{num_bytes / mb:.2f} MB"
    if num_bytes >= kb:
        return f"{num_bytes / kb:.2f} KB"
    return f"{num_bytes} bytes"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _mapping(value: Any, label: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f"{label} must be a mapping")
    return value


def _sequence(value: Any, label: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"{label} must be a list")
    return value


def _str(value: Any, label: str) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool) or isinstance(value, (dict, list)):
        raise ManifestError(f"{label} must be a string")
    return str(value)


def _duration(value: Any, label: str) -> str:
    # YAML 1.1 reads unquoted 3:45 as a base-60 integer.
    if isinstance(value, int) and not isinstance(value, bool):
        hours, rest = divmod(value, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"
    return _str(value, label)


def _int(value: Any, label: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ManifestError(f"{label} must be an integer")
    return value


def _names(value: Any, label: str) -> tuple[str, ...]:
    return tuple(_str(v, f"{label}[{i}]") for i, v in enumerate(_sequence(value, label)))


def _image(value: Any, label: str) -> ImageInfo:
    obj = _mapping(value, label)
    return ImageInfo(
        filename=_str(obj.get("filename"), f"{label}.filename"),
        width=_int(obj.get("width"), f"{label}.width"),
        height=_int(obj.get("height"), f"{label}.height"),
    )


def _optional_image(value: Any, label: str) -> ImageInfo | None:
    if value is None:
        return None
    return _image(value, label)


def manifest_from_obj(obj: Any) -> Manifest:
    root = _mapping(obj, "manifest")

    release = _mapping(root.get("release"), "release")
    tracks: list[Track] = []
    for i, raw in enumerate(_sequence(root.get("tracks"), "tracks")):
        t = _mapping(raw, f"tracks[{i}]")
        tracks.append(
            Track(
                number=_int(t.get("number"), f"tracks[{i}].number"),
                title=_str(t.get("title"), f"tracks[{i}].title"),
                filename=_str(t.get("filename"), f"tracks[{i}].filename"),
                duration=_duration(t.get("duration"), f"tracks[{i}].duration"),
                composers=_names(t.get("composers"), f"tracks[{i}].composers"),
                performers=_names(t.get("performers"), f"tracks[{i}].performers"),
            )
        )

    formats: list[AudioFormat] = []
    for i, raw in enumerate(_sequence(root.get("audio_formats"), "audio_formats")):
        f = _mapping(raw, f"audio_formats[{i}]")
        formats.append(
            AudioFormat(
                format=_str(f.get("format"), f"audio_formats[{i}].format"),
                bitrate=_int(f.get("bitrate"), f"audio_formats[{i}].bitrate"),
                bit_depth=_int(f.get("bit_depth"), f"audio_formats[{i}].bit_depth"),
                sample_rate=_int(f.get("sample_rate"), f"audio_formats[{i}].sample_rate"),
            )
        )

    images = _mapping(root.get("images"), "images")
    rights = _mapping(root.get("rights"), "rights")
    bundle = _mapping(root.get("bundle"), "bundle")

    return Manifest(
        manifest_version=_int(root.get("manifest_version"), "manifest_version"),
        release=Release(
            title=_str(release.get("title"), "release.title"),
            artist=_str(release.get("artist"), "release.artist"),
            release_date=_str(release.get("release_date"), "release.release_date"),
            genre=_str(release.get("genre"), "release.genre"),
            subgenre=_str(release.get("subgenre"), "release.subgenre"),
            catalog_number=_str(release.get("catalog_number"), "release.catalog_number"),
        ),
        tracks=tuple(tracks),
        audio_formats=tuple(formats),
        images=Images(
            cover=_image(images.get("cover"), "images.cover"),
            cover_large=_optional_image(images.get("cover_large"), "images.cover_large"),
            back=_optional_image(images.get("back"), "images.back"),
            artist=_optional_image(images.get("artist"), "images.artist"),
        ),
        rights=Rights(
            copyright_year=_int(rights.get("copyright_year"), "rights.copyright_year"),
            copyright_holder=_str(rights.get("copyright_holder"), "rights.copyright_holder"),
            license=_str(rights.get("license"), "rights.license"),
            contact=_str(rights.get("contact"), "rights.contact"),
        ),
        bundle=BundleMeta(
            created_by=_str(bundle.get("created_by"), "bundle.created_by"),
            created_at=_str(bundle.get("created_at"), "bundle.created_at"),
            bundle_id=_str(bundle.get("bundle_id"), "bundle.bundle_id"),
        ),
    )


def parse_manifest_bytes(data: bytes) -> Manifest:
    try:
        text = data.decode("utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise ManifestError(f"manifest is not valid UTF-8: {e}") from e
    try:
        obj = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}") from e
    if obj is None:
        raise ManifestError("manifest is empty")
    return manifest_from_obj(obj)


def read_manifest_bytes(path: Path) -> bytes:
    """Return raw manifest.yaml bytes from a source directory or a .ricecake archive."""

    if path.is_dir():
        manifest_path = path / MANIFEST_FILENAME
        try:
            return manifest_path.read_bytes()
        except OSError as e:
            raise BundleIOError("manifest", manifest_path, e.strerror or str(e)) from e

    try:
        with zipfile.ZipFile(path) as zf:
            if MANIFEST_FILENAME not in zf.namelist():
                raise ManifestError(f"{MANIFEST_FILENAME} not found in bundle: {path}")
            return zf.read(MANIFEST_FILENAME)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"not a valid bundle archive: {path}") from e
    except OSError as e:
        raise BundleIOError("manifest", path, e.strerror or str(e)) from e


def read_manifest(path: Path) -> Manifest:
    return parse_manifest_bytes(read_manifest_bytes(path))
