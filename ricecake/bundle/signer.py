"""Detached Ed25519 signatures bound to a bundle's content digest.

Signing never edits an archive in place: the archive is extracted to a
private scratch directory, signature.sig is written into the tree, and the
tree is repacked over the original through a sibling temp file. Re-signing
replaces any previous signature.sig. Verification always recomputes the
digest; nothing about a past verification is stored.
"""

from __future__ import annotations

import base64
import logging
import tempfile
from dataclasses import dataclass
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ricecake.core.errors import BundleIOError, ManifestError, SigningError
from ricecake.core.hash import HASH_ALGORITHM, ContentDigest, compute_content_digest
from ricecake.core.time import utc_timestamp_iso_z
from ricecake.protocol.manifest import SIGNATURE_FILENAME, read_manifest
from ricecake.protocol.signature import SignatureRecord, format_signature_record, parse_signature_record

from .archive import pack, unpack


logger = logging.getLogger(__name__)


class VerifyStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ABSENT = "absent"


@dataclass(frozen=True)
class VerifyOutcome:
    status: VerifyStatus
    message: str
    record: SignatureRecord | None = None

    @property
    def ok(self) -> bool:
        return self.status is VerifyStatus.PASS


def tool_version() -> str:
    try:
        return f"ricecake {version('ricecake')}"
    except PackageNotFoundError:
        return "ricecake 0.0.0"


def bundle_digest(root: Path) -> ContentDigest:
    """Digest every regular file in the extracted tree except signature.sig.

    Helper files count too: a README.txt added to a subdirectory after signing
    must break verification.
    """

    return compute_content_digest(root, exclude_names=(SIGNATURE_FILENAME,))


def sign_archive(
    archive: Path,
    private_key: Ed25519PrivateKey,
    *,
    created_at: str | None = None,
) -> SignatureRecord:
    if not archive.is_file():
        raise BundleIOError("sign", archive, "bundle not found")

    with tempfile.TemporaryDirectory(prefix="rice-sign-") as scratch:
        root = Path(scratch)
        logger.debug("extracting %s", archive)
        unpack(archive, root)

        try:
            manifest = read_manifest(root)
        except (ManifestError, BundleIOError) as e:
            raise SigningError(f"failed to read manifest: {e}") from e
        bundle_id = manifest.bundle.bundle_id
        if not bundle_id:
            raise SigningError("manifest has no bundle.bundle_id; cannot sign")

        logger.debug("computing content hash")
        digest = bundle_digest(root)
        signature = private_key.sign(digest.digest)

        record = SignatureRecord(
            bundle_id=bundle_id,
            hash_algorithm=digest.algorithm,
            content_hash_b64=digest.b64,
            signature_b64=base64.b64encode(signature).decode("ascii"),
            tool_version=tool_version(),
            created_at=created_at or utc_timestamp_iso_z(),
        )
        (root / SIGNATURE_FILENAME).write_text(format_signature_record(record), encoding="utf-8", newline="\n")

        logger.debug("repacking %s with signature", archive)
        pack(root, archive, skip_helpers=False)

    return record


def verify_archive(archive: Path, public_key: Ed25519PublicKey) -> VerifyOutcome:
    if not archive.is_file():
        raise BundleIOError("verify", archive, "bundle not found")

    with tempfile.TemporaryDirectory(prefix="rice-verify-") as scratch:
        root = Path(scratch)
        unpack(archive, root)

        sig_path = root / SIGNATURE_FILENAME
        if not sig_path.is_file():
            return VerifyOutcome(VerifyStatus.ABSENT, "bundle is not signed")

        try:
            record = parse_signature_record(sig_path.read_text(encoding="utf-8", errors="strict"))
        except (UnicodeDecodeError, ValueError) as e:
            return VerifyOutcome(VerifyStatus.FAIL, f"malformed signature artifact: {e}")

        if record.hash_algorithm != HASH_ALGORITHM:
            return VerifyOutcome(VerifyStatus.FAIL, f"unsupported hash algorithm: {record.hash_algorithm}", record)

        digest = bundle_digest(root)
        if record.content_hash != digest.digest:
            return VerifyOutcome(VerifyStatus.FAIL, "content hash mismatch: bundle modified since signing", record)

        try:
            public_key.verify(record.signature, digest.digest)
        except InvalidSignature:
            return VerifyOutcome(VerifyStatus.FAIL, "signature does not match public key", record)

        try:
            manifest_id = read_manifest(root).bundle.bundle_id
        except (ManifestError, BundleIOError) as e:
            return VerifyOutcome(VerifyStatus.FAIL, f"signed bundle has unreadable manifest: {e}", record)
        if manifest_id != record.bundle_id:
            return VerifyOutcome(
                VerifyStatus.FAIL, f"bundle id mismatch: manifest={manifest_id!r} signature={record.bundle_id!r}", record
            )

    return VerifyOutcome(VerifyStatus.PASS, "signature valid", record)
