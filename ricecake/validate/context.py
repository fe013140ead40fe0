from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ricecake.protocol.manifest import Manifest


@dataclass(frozen=True)
class ValidationContext:
    root: Path
    strict: bool

    manifest_path: Path
    manifest_present: bool
    manifest: Manifest | None
    manifest_error: str | None
