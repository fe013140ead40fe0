from __future__ import annotations

import struct
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey


BUNDLE_ID = "6f1c2a9e-3b7d-4c1e-9a52-0d8e4f7b1c33"

MANIFEST_YAML = f"""\
manifest_version: 1
release:
  title: Night Market
  artist: The Rice Cookers
  release_date: 2024-01-15
  genre: Electronic
  subgenre: Downtempo
tracks:
  - number: 1
    title: Steam
    duration: "3:45"
    filename: 01-steam
    composers: [Jane Doe]
  - number: 2
    title: Lanterns
    duration: "4:10"
    filename: 02-lanterns
audio_formats:
  - format: mp3
    bitrate: 320
images:
  cover:
    filename: images/cover.jpg
    width: 3000
    height: 3000
rights:
  copyright_year: 2024
  copyright_holder: Jane Doe
  license: All Rights Reserved
bundle:
  created_by: rice 1.0.0
  created_at: "2024-01-15T10:00:00Z"
  bundle_id: {BUNDLE_ID}
"""

COPYRIGHT_TEXT = "Copyright 2024 Jane Doe\nAll rights reserved.\n"

MP3_BYTES = b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\x00" * 512
FLAC_BYTES = b"fLaC\x00\x00\x00\x22" + b"\x00" * 256


def make_jpeg(width: int, height: int) -> bytes:
    """Smallest JPEG header the dimension reader accepts: SOI, APP0, SOF0, EOI."""

    app0 = b"JFIF\x00" + b"\x01\x01" + b"\x00" + struct.pack(">HH", 72, 72) + b"\x00\x00"
    sof0 = b"\x08" + struct.pack(">HH", height, width) + b"\x03" + b"\x01\x22\x00\x02\x11\x01\x03\x11\x01"
    return (
        b"\xff\xd8"
        + b"\xff\xe0" + struct.pack(">H", len(app0) + 2) + app0
        + b"\xff\xc0" + struct.pack(">H", len(sof0) + 2) + sof0
        + b"\xff\xd9"
    )


def write_bundle(root: Path, *, cover: tuple[int, int] = (3000, 3000)) -> Path:
    (root / "audio").mkdir(parents=True)
    (root / "images").mkdir()
    (root / "liner-notes").mkdir()
    (root / "manifest.yaml").write_text(MANIFEST_YAML, encoding="utf-8")
    (root / "copyright.txt").write_text(COPYRIGHT_TEXT, encoding="utf-8")
    (root / "audio" / "01-steam.mp3").write_bytes(MP3_BYTES)
    (root / "audio" / "02-lanterns.mp3").write_bytes(MP3_BYTES + b"\x01")
    (root / "images" / "cover.jpg").write_bytes(make_jpeg(*cover))
    (root / "liner-notes" / "notes.txt").write_text("Recorded at night.\n", encoding="utf-8")
    return root


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    return write_bundle(tmp_path / "night-market")


@pytest.fixture
def archive(tmp_path: Path, bundle_dir: Path) -> Path:
    from ricecake.bundle.archive import pack

    out = tmp_path / "night-market.ricecake"
    pack(bundle_dir, out)
    return out


@pytest.fixture
def private_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()
