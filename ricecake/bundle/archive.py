"""ZIP packaging of a bundle tree and safe extraction.

Archives are reproducible: entries are written in sorted relpath order with a
fixed timestamp and fixed permission bits, so identical trees produce
byte-identical archives.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

from ricecake.core.errors import ArchiveError, BundleIOError
from ricecake.core.hash import sha256_file
from ricecake.core.jail import ensure_within_root, normalize_bundle_rel


logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 6
FIXED_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

# Helper files dropped into subdirectories by scaffolding; not bundle content.
_HELPER_FILENAMES = frozenset({"README.txt"})

_FILE_MODE = 0o100644
_DIR_MODE = 0o040755
_MSDOS_DIRECTORY = 0x10


@dataclass(frozen=True)
class ArchiveInfo:
    path: Path
    size_bytes: int
    file_count: int
    sha256: str


def _is_helper(rel: str) -> bool:
    return "/" in rel and rel.rsplit("/", 1)[-1] in _HELPER_FILENAMES


def list_tree(root: Path, *, skip_helpers: bool = True) -> tuple[list[str], list[str]]:
    """Return (directories, files) as sorted POSIX relpaths.

    Subdirectory README.txt helpers are dropped unless skip_helpers is False.
    A name that unpack() would refuse raises BundleIOError.
    """

    dirs: list[str] = []
    files: list[str] = []

    def on_error(e: OSError) -> None:
        raise BundleIOError("pack", e.filename or root, e.strerror or str(e)) from e

    def checked(p: Path) -> str:
        rel = p.relative_to(root).as_posix()
        try:
            normalize_bundle_rel(rel)
        except ValueError as e:
            raise BundleIOError("pack", p, f"unsupported entry name: {e}") from e
        return rel

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
        base = Path(dirpath)
        for name in dirnames:
            dirs.append(checked(base / name))
        for name in filenames:
            rel = checked(base / name)
            if skip_helpers and _is_helper(rel):
                logger.debug("skipping helper file %s", rel)
                continue
            files.append(rel)

    dirs.sort(key=lambda r: r.encode("utf-8"))
    files.sort(key=lambda r: r.encode("utf-8"))
    return dirs, files


def _dir_info(rel: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(rel + "/", date_time=FIXED_ZIP_DATE_TIME)
    info.external_attr = (_DIR_MODE << 16) | _MSDOS_DIRECTORY
    info.compress_type = zipfile.ZIP_STORED
    return info


def _file_info(rel: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(rel, date_time=FIXED_ZIP_DATE_TIME)
    info.external_attr = _FILE_MODE << 16
    info.compress_type = zipfile.ZIP_DEFLATED
    return info


def _write_archive(root: Path, out_path: Path, skip_helpers: bool) -> int:
    dirs, files = list_tree(root, skip_helpers=skip_helpers)
    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as zf:
        for rel in dirs:
            zf.writestr(_dir_info(rel), b"")
        for rel in files:
            src = root.joinpath(*rel.split("/"))
            logger.debug("adding %s", rel)
            try:
                # A ZipInfo without an explicit level deflates at zlib's default, which is level 6.
                large = src.stat().st_size >= zipfile.ZIP64_LIMIT
                with src.open("rb") as fsrc, zf.open(_file_info(rel), "w", force_zip64=large) as fdst:
                    shutil.copyfileobj(fsrc, fdst)
            except OSError as e:
                raise BundleIOError("pack", src, e.strerror or str(e)) from e
    return len(files)


def pack(root: Path, destination: Path, *, skip_helpers: bool = True) -> int:
    """Write root as an archive at destination; returns the number of files packed.

    The archive is written to a sibling temp file and renamed over destination,
    so a failure leaves any existing destination untouched. Repacking an
    extracted archive passes skip_helpers=False so no member is dropped.
    """

    if not root.is_dir():
        raise BundleIOError("pack", root, "source is not a directory")

    destination = destination.resolve()
    if root.resolve() in destination.parents:
        raise BundleIOError("pack", destination, "destination must not be inside the source tree")

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=destination.name + ".", suffix=".tmp", dir=destination.parent)
    except OSError as e:
        raise BundleIOError("pack", destination, e.strerror or str(e)) from e
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        count = _write_archive(root, tmp_path, skip_helpers)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, destination)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug("packed %d file(s) into %s", count, destination)
    return count


def unpack(archive: Path, destination: Path) -> list[str]:
    """Extract archive into destination, rejecting entries that would escape it.

    Returns the extracted file relpaths.
    """

    destination.mkdir(parents=True, exist_ok=True)
    extracted: list[str] = []
    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                try:
                    rel = normalize_bundle_rel(info.filename)
                except ValueError as e:
                    raise ArchiveError(f"unsafe archive entry {info.filename!r}: {e}") from e

                target = destination.joinpath(*rel.split("/"))
                try:
                    ensure_within_root(destination, target)
                except ValueError as e:
                    raise ArchiveError(f"unsafe archive entry {info.filename!r}: {e}") from e

                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as fsrc, target.open("wb") as fdst:
                    shutil.copyfileobj(fsrc, fdst)
                extracted.append(rel)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"not a valid bundle archive: {archive}: {e}") from e
    except OSError as e:
        raise BundleIOError("unpack", e.filename or archive, e.strerror or str(e)) from e
    return extracted


def read_member(archive: Path, name: str) -> bytes | None:
    """Return one member's bytes, or None when the archive has no such entry."""

    try:
        with zipfile.ZipFile(archive) as zf:
            try:
                return zf.read(name)
            except KeyError:
                return None
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"not a valid bundle archive: {archive}: {e}") from e
    except OSError as e:
        raise BundleIOError("unpack", archive, e.strerror or str(e)) from e


def archive_info(path: Path, file_count: int) -> ArchiveInfo:
    try:
        size = path.stat().st_size
        digest = sha256_file(path)
    except OSError as e:
        raise BundleIOError("pack", path, e.strerror or str(e)) from e
    return ArchiveInfo(path=path, size_bytes=size, file_count=file_count, sha256=digest)
