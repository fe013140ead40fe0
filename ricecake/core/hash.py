from __future__ import annotations

import base64
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ricecake.core.errors import BundleIOError
from ricecake.core.jail import normalize_bundle_rel


logger = logging.getLogger(__name__)

HASH_ALGORITHM = "SHA-256"

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass(frozen=True)
class ContentDigest:
    algorithm: str
    digest: bytes

    @property
    def b64(self) -> str:
        return base64.b64encode(self.digest).decode("ascii")

    @property
    def hex(self) -> str:
        return self.digest.hex()


def collect_content_files(root: Path, *, exclude_names: Iterable[str] = ()) -> list[str]:
    """Return POSIX relpaths of every regular file under root, minus excluded base names.

    The order of the returned list is whatever the walk produced; callers
    that need a canonical order go through digest_files().
    """

    excluded = frozenset(exclude_names)
    relpaths: list[str] = []

    def on_error(e: OSError) -> None:
        raise BundleIOError("hash", e.filename or root, e.strerror or str(e)) from e

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
        base = Path(dirpath)
        for name in filenames:
            if name in excluded:
                continue
            p = base / name
            if p.is_symlink():
                continue
            relpaths.append(p.relative_to(root).as_posix())
    return relpaths


def digest_files(root: Path, relpaths: Iterable[str]) -> ContentDigest:
    """Hash (relpath bytes, file bytes) pairs in byte-wise sorted relpath order.

    The sort is applied here, so the order of relpaths does not matter.
    Any file that cannot be read aborts the whole digest.
    """

    normalized: list[str] = []
    for r in relpaths:
        try:
            normalized.append(normalize_bundle_rel(r))
        except ValueError as e:
            raise BundleIOError("hash", r, str(e)) from e
    ordered = sorted(normalized, key=lambda r: r.encode("utf-8"))
    h = hashlib.sha256()
    for rel in ordered:
        p = root.joinpath(*rel.split("/"))
        h.update(rel.encode("utf-8"))
        try:
            with p.open("rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    h.update(chunk)
        except OSError as e:
            raise BundleIOError("hash", p, e.strerror or str(e)) from e
        logger.debug("hashed %s", rel)
    return ContentDigest(algorithm=HASH_ALGORITHM, digest=h.digest())


def compute_content_digest(root: Path, *, exclude_names: Iterable[str] = ()) -> ContentDigest:
    if not root.is_dir():
        raise BundleIOError("hash", root, "not a directory")
    return digest_files(root, collect_content_files(root, exclude_names=exclude_names))
