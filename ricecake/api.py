"""Entry points for front ends (the rice CLI, a preview server, scripts).

Each function takes plain paths and key objects and returns the domain types
defined by the lower layers; none of them prints.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ricecake.bundle.archive import ArchiveInfo, archive_info, pack, unpack
from ricecake.bundle.signer import VerifyOutcome, sign_archive, verify_archive
from ricecake.core.errors import BundleIOError
from ricecake.protocol.manifest import ARCHIVE_EXTENSION, Manifest
from ricecake.protocol.manifest import read_manifest as _read_manifest
from ricecake.protocol.signature import SignatureRecord
from ricecake.validate.base import ValidationReport
from ricecake.validate.runner import validate_tree


logger = logging.getLogger(__name__)


def default_output_path(source_dir: Path) -> Path:
    """<dir>.ricecake next to the source directory."""

    resolved = source_dir.resolve()
    return resolved.parent / (resolved.name + ARCHIVE_EXTENSION)


def validate(path: Path, strict: bool = False) -> ValidationReport:
    """Validate a source directory or a packed archive.

    An archive is extracted into a private scratch directory first; the
    report still names the archive.
    """

    if path.is_dir():
        return validate_tree(path, strict=strict)
    if not path.exists():
        raise BundleIOError("validate", path, "path does not exist")

    with tempfile.TemporaryDirectory(prefix="rice-validate-") as scratch:
        root = Path(scratch)
        logger.debug("extracting %s for validation", path)
        unpack(path, root)
        return validate_tree(root, strict=strict, report_path=str(path))


def build(source_dir: Path, output_path: Path, *, force: bool = False) -> ArchiveInfo:
    """Pack source_dir into output_path. Validation is the caller's decision."""

    if not source_dir.is_dir():
        raise BundleIOError("build", source_dir, "source is not a directory")
    if output_path.exists() and not force:
        raise FileExistsError(f"output file already exists: {output_path} (use --force to overwrite)")

    count = pack(source_dir, output_path)
    return archive_info(output_path, count)


def sign(archive_path: Path, private_key: Ed25519PrivateKey) -> SignatureRecord:
    return sign_archive(archive_path, private_key)


def verify(archive_path: Path, public_key: Ed25519PublicKey) -> VerifyOutcome:
    return verify_archive(archive_path, public_key)


def read_manifest(path: Path) -> Manifest:
    """Read manifest.yaml from a source directory or from an archive member."""

    if not path.exists():
        raise BundleIOError("manifest", path, "path does not exist")
    return _read_manifest(path)
