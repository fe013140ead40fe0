"""Lowest-level ricecake utilities.

Dependency direction rules:
- ricecake.core must not import ricecake.protocol, ricecake.validate, ricecake.bundle or ricecake.cli
"""

from ricecake.core.errors import ArchiveError, BundleIOError, ManifestError, SigningError, SigningKeyError
from ricecake.core.hash import ContentDigest, compute_content_digest, digest_files, sha256_file
from ricecake.core.jail import ensure_within_root, has_parent_segment, normalize_bundle_rel

__all__ = [
	"ArchiveError",
	"BundleIOError",
	"ContentDigest",
	"ManifestError",
	"SigningError",
	"SigningKeyError",
	"compute_content_digest",
	"digest_files",
	"ensure_within_root",
	"has_parent_segment",
	"normalize_bundle_rel",
	"sha256_file",
]
