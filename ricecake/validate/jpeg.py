from __future__ import annotations

import struct
from pathlib import Path
from typing import BinaryIO


# Start-of-frame markers carrying the frame dimensions (baseline, progressive,
# lossless, arithmetic). C4 (DHT), C8 (JPG) and CC (DAC) are not frames.
_SOF_MARKERS = frozenset({0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF})
# Markers with no length field.
_STANDALONE_MARKERS = frozenset({0x01, 0xD0, 0xD1, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7})
_SOS = 0xDA
_EOI = 0xD9


def _read_exact(f: BinaryIO, n: int) -> bytes:
    data = f.read(n)
    if len(data) != n:
        raise ValueError("truncated JPEG header")
    return data


def read_jpeg_dimensions_from(f: BinaryIO) -> tuple[int, int]:
    """Walk JPEG marker segments up to the first SOF and return (width, height)."""

    if _read_exact(f, 2) != b"\xff\xd8":
        raise ValueError("missing JPEG SOI marker")

    while True:
        byte = _read_exact(f, 1)
        if byte != b"\xff":
            raise ValueError("malformed JPEG marker stream")
        marker = _read_exact(f, 1)[0]
        while marker == 0xFF:
            marker = _read_exact(f, 1)[0]

        if marker in _STANDALONE_MARKERS:
            continue
        if marker in (_SOS, _EOI):
            raise ValueError("no frame header before image data")

        (length,) = struct.unpack(">H", _read_exact(f, 2))
        if length < 2:
            raise ValueError("invalid JPEG segment length")

        if marker in _SOF_MARKERS:
            segment = _read_exact(f, length - 2)
            if len(segment) < 5:
                raise ValueError("truncated JPEG frame header")
            height, width = struct.unpack(">HH", segment[1:5])
            if width == 0 or height == 0:
                raise ValueError("JPEG frame declares zero dimension")
            return width, height

        _read_exact(f, length - 2)


def read_jpeg_dimensions(path: Path) -> tuple[int, int]:
    with path.open("rb") as f:
        return read_jpeg_dimensions_from(f)
