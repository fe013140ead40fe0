from __future__ import annotations

import logging
from pathlib import Path

from ricecake.core.errors import BundleIOError, ManifestError
from ricecake.protocol.manifest import MANIFEST_FILENAME, Manifest, parse_manifest_bytes

from .base import ValidationReport
from .context import ValidationContext
from .registry import get_checks


logger = logging.getLogger(__name__)


def _load_manifest(path: Path) -> tuple[bool, Manifest | None, str | None]:
    if not path.is_file():
        return False, None, None
    try:
        return True, parse_manifest_bytes(path.read_bytes()), None
    except ManifestError as e:
        return True, None, str(e)
    except OSError as e:
        return True, None, f"cannot read manifest: {e.strerror or e}"


def build_context(root: Path, *, strict: bool) -> ValidationContext:
    manifest_path = root / MANIFEST_FILENAME
    present, manifest, error = _load_manifest(manifest_path)
    return ValidationContext(
        root=root,
        strict=strict,
        manifest_path=manifest_path,
        manifest_present=present,
        manifest=manifest,
        manifest_error=error,
    )


def validate_tree(root: Path, *, strict: bool = False, report_path: str | None = None) -> ValidationReport:
    """Run every check category against a source tree.

    Content violations become results; only a missing or unreadable root
    raises (BundleIOError).
    """

    if not root.exists():
        raise BundleIOError("validate", root, "path does not exist")
    if not root.is_dir():
        raise BundleIOError("validate", root, "path must be a directory")
    try:
        next(root.iterdir(), None)
    except OSError as e:
        raise BundleIOError("validate", root, e.strerror or str(e)) from e

    ctx = build_context(root, strict=strict)
    report = ValidationReport(path=report_path or str(root), strict=strict)
    for check in get_checks():
        results = check.run(ctx)
        logger.debug("%s: %d result(s)", check.__name__.rsplit(".", 1)[-1], len(results))
        report.add(results)
    return report
