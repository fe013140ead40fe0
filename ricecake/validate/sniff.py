"""Container-format sniffing from the first bytes of a file.

To support a new format add a Container member, a matcher in _MATCHERS and
its extensions in EXTENSION_CONTAINERS.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable


HEADER_SIZE = 12
_MIN_HEADER = 4


class Container(str, Enum):
    MP3 = "MP3"
    FLAC = "FLAC"
    OGG = "OGG"
    WAV = "WAV"
    JPEG = "JPEG"


def _is_mp3(h: bytes) -> bool:
    # ID3v2 tag, or a bare MPEG frame sync (0xFF then top 3 bits set).
    return h[:3] == b"ID3" or (h[0] == 0xFF and (h[1] & 0xE0) == 0xE0)


_MATCHERS: dict[Container, Callable[[bytes], bool]] = {
    Container.MP3: _is_mp3,
    Container.FLAC: lambda h: h[:4] == b"fLaC",
    Container.OGG: lambda h: h[:4] == b"OggS",
    Container.WAV: lambda h: h[:4] == b"RIFF",
    Container.JPEG: lambda h: h[:3] == b"\xff\xd8\xff",
}

EXTENSION_CONTAINERS: dict[str, Container] = {
    ".mp3": Container.MP3,
    ".flac": Container.FLAC,
    ".ogg": Container.OGG,
    ".wav": Container.WAV,
    ".jpg": Container.JPEG,
    ".jpeg": Container.JPEG,
}


def matches_container(header: bytes, container: Container) -> bool:
    if len(header) < _MIN_HEADER:
        return False
    return _MATCHERS[container](header)


def sniff_file(path: Path, ext: str) -> str | None:
    """Return None when the file header matches ext, otherwise a failure message."""

    container = EXTENSION_CONTAINERS.get(ext.lower())
    if container is None:
        return f"no signature known for file type {ext}"
    try:
        with path.open("rb") as f:
            header = f.read(HEADER_SIZE)
    except OSError as e:
        return f"cannot open file: {e.strerror or e}"
    if len(header) < _MIN_HEADER:
        return "cannot read file header"
    if not matches_container(header, container):
        return f"file does not appear to be a valid {container.value}"
    return None
