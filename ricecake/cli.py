#!/usr/bin/env python3
"""rice CLI: validate, build, sign and inspect ricecake bundles.

This is the installable CLI entrypoint (console_scripts).

Subcommands:
- rice validate   → Validate a source directory or .ricecake archive
- rice build      → Validate (unless --no-validate) and pack a directory
- rice sign       → Add or replace the Ed25519 signature of an archive
- rice verify     → Check an archive's signature against a public key
- rice keygen     → Generate an Ed25519 key pair
- rice info       → Summarize a bundle's manifest
- rice describe   → Print a bundle's manifest.yaml
- rice about      → Print package identity info

Exit codes:
- 0: success
- 1: check failed (validation errors, verification failed or signature absent, build refused)
- 3: usage/internal error
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, metadata, version
from pathlib import Path

from ricecake import api
from ricecake.bundle.archive import read_member
from ricecake.bundle.keys import (
    DEFAULT_KEY_ENV,
    generate_keypair,
    load_private_key,
    load_private_key_from_env,
    load_public_key,
    save_keypair,
)
from ricecake.core.errors import ArchiveError, BundleIOError, ManifestError, SigningError, SigningKeyError
from ricecake.protocol.manifest import (
    MANIFEST_FILENAME,
    SIGNATURE_FILENAME,
    Manifest,
    format_size,
    read_manifest_bytes,
)
from ricecake.validate.base import CATEGORY_ORDER, Severity, ValidationReport


ABOUT_FORMAT = "ricecake bundle format 1 (ZIP, SHA-256 content hash, Ed25519 signatures)"

_DOMAIN_ERRORS = (BundleIOError, ArchiveError, ManifestError)


def _err(cmd: str, message: object) -> None:
    print(f"[rice {cmd}] ERROR: {message}", file=sys.stderr)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------

def _print_report(report: ValidationReport, *, quiet: bool) -> None:
    print(f"Validating: {report.path}")
    print()

    for category in CATEGORY_ORDER:
        results = report.by_category(category)
        if not results:
            continue
        passed = sum(1 for r in results if r.passed)
        failed = sum(1 for r in results if r.severity is Severity.ERROR)
        warned = sum(1 for r in results if r.severity is Severity.WARNING)

        status = "[PASS]"
        if failed:
            status = "[FAIL]"
        elif warned:
            status = "[WARN]"

        if quiet and not (failed or warned):
            continue
        print(f"{status} {category.value} checks ({passed}/{len(results)})")
        for r in results:
            if r.passed:
                continue
            label = "ERROR" if r.severity is Severity.ERROR else "WARN"
            print(f"  - [{label}] {r.check}: {r.message}")

    print()
    if not report.is_buildable():
        print(f"Validation failed: {report.errors} error(s), {report.warnings} warning(s)")
    else:
        print(f"Validation complete: {report.warnings} warning(s), 0 errors")
        print("Bundle is valid for building.")


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        report = api.validate(Path(args.path), strict=bool(args.strict))
    except _DOMAIN_ERRORS as e:
        _err("validate", e)
        return 3

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_report(report, quiet=bool(args.quiet))
    return 0 if report.is_buildable() else 1


# ---------------------------------------------------------------------------
# build
# ---------------------------------------------------------------------------

def cmd_build(args: argparse.Namespace) -> int:
    source = Path(args.directory)
    if not source.is_dir():
        _err("build", f"not a directory: {source}")
        return 3
    output = Path(args.output) if args.output else api.default_output_path(source)

    if output.exists() and not args.force:
        _err("build", f"output file already exists: {output} (use --force to overwrite)")
        return 3

    if not args.no_validate:
        print("Validating bundle...")
        try:
            report = api.validate(source, strict=bool(args.strict))
        except _DOMAIN_ERRORS as e:
            _err("build", e)
            return 3
        if not report.is_buildable():
            for r in report.failures():
                if r.severity is Severity.ERROR or args.strict:
                    print(f"  [{r.severity.value.upper()}] {r.check}: {r.message}")
            _err("build", f"validation failed with {report.blocking_count()} blocking issue(s)")
            return 1
        print("  Validation passed")
        print()

    print("Building bundle...")
    try:
        info = api.build(source, output, force=bool(args.force))
    except (FileExistsError, *_DOMAIN_ERRORS) as e:
        _err("build", e)
        return 3

    print()
    print(f"Bundle created: {info.path.name}")
    print(f"  Files: {info.file_count}")
    print(f"  Size: {format_size(info.size_bytes)}")
    print(f"  SHA-256: {info.sha256}")
    return 0


# ---------------------------------------------------------------------------
# sign / verify / keygen
# ---------------------------------------------------------------------------

def cmd_sign(args: argparse.Namespace) -> int:
    archive = Path(args.bundle)
    if not archive.is_file():
        _err("sign", f"bundle not found: {archive}")
        return 3

    try:
        if args.key:
            print(f"Loading key from: {args.key}")
            key = load_private_key(Path(args.key))
        else:
            print(f"Loading key from environment: {args.key_env}")
            key = load_private_key_from_env(args.key_env)
    except SigningKeyError as e:
        _err("sign", f"failed to load private key ({e.reason}): {e}")
        return 3

    print(f"Signing bundle: {archive.name}")
    try:
        record = api.sign(archive, key)
    except (SigningError, *_DOMAIN_ERRORS) as e:
        _err("sign", f"signing failed: {e}")
        return 3

    print()
    print("Bundle signed successfully.")
    print(f"  Signature: {SIGNATURE_FILENAME}")
    print(f"  Bundle-ID: {record.bundle_id}")
    print(f"  Content-Hash: {record.content_hash_b64}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    archive = Path(args.bundle)
    try:
        public_key = load_public_key(Path(args.pubkey))
    except SigningKeyError as e:
        _err("verify", f"failed to load public key ({e.reason}): {e}")
        return 3

    try:
        outcome = api.verify(archive, public_key)
    except _DOMAIN_ERRORS as e:
        _err("verify", e)
        return 3

    if args.json:
        out = {"path": str(archive), "status": outcome.status.value, "message": outcome.message}
        if outcome.record is not None:
            out["bundle_id"] = outcome.record.bundle_id
            out["created_at"] = outcome.record.created_at
        print(json.dumps(out, indent=2, ensure_ascii=False))
    else:
        print(f"[{outcome.status.value.upper()}] {archive.name}: {outcome.message}")
        if outcome.record is not None:
            print(f"  Bundle-ID: {outcome.record.bundle_id}")
            print(f"  Signed at: {outcome.record.created_at} ({outcome.record.tool_version})")
    return 0 if outcome.ok else 1


def cmd_keygen(args: argparse.Namespace) -> int:
    output_dir = Path(args.output) if args.output else Path.home() / ".rice"
    print("Generating Ed25519 key pair...")
    try:
        private_path, public_path = save_keypair(generate_keypair(), output_dir)
    except FileExistsError as e:
        _err("keygen", e)
        return 3
    except OSError as e:
        _err("keygen", f"failed to save keys: {e}")
        return 3

    print()
    print("Key pair generated successfully!")
    print(f"  Private key: {private_path} (keep secret!)")
    print(f"  Public key:  {public_path} (embed in player)")
    print()
    print("To sign bundles, use:")
    print(f"  rice sign mybundle.ricecake --key {private_path}")
    return 0


# ---------------------------------------------------------------------------
# info / describe / about
# ---------------------------------------------------------------------------

def _bundle_size(path: Path) -> int:
    if path.is_file():
        return path.stat().st_size
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            p = Path(dirpath) / name
            if not p.is_symlink():
                total += p.stat().st_size
    return total


def _is_signed(path: Path) -> bool:
    if path.is_dir():
        return (path / SIGNATURE_FILENAME).is_file()
    return read_member(path, SIGNATURE_FILENAME) is not None


def _print_info(m: Manifest, *, size: int, signed: bool, show_tracks: bool) -> None:
    print("Bundle Information")
    print("==================")
    print()
    print(f"Title:    {m.release.title}")
    print(f"Artist:   {m.release.artist}")
    print(f"Released: {m.release.release_date}")
    if m.release.subgenre:
        print(f"Genre:    {m.release.genre} / {m.release.subgenre}")
    elif m.release.genre:
        print(f"Genre:    {m.release.genre}")

    print()
    print(f"Tracks: {len(m.tracks)}")
    total = m.total_duration()
    if total:
        print(f"Total Duration: {total}")

    print()
    print("Audio Formats:")
    for af in m.audio_formats:
        print(f"  - {af.describe()}")

    print()
    print("Bundle Details:")
    print(f"  Size: {format_size(size)}")
    print(f"  Created: {m.bundle.created_at}")
    print(f"  Tool: {m.bundle.created_by}")
    print(f"  Signed: {'Yes' if signed else 'No'}")

    print()
    print(f"Copyright: {m.rights.copyright_year} {m.rights.copyright_holder}")

    if show_tracks:
        print()
        print("Track Listing:")
        print("--------------")
        for track in m.tracks:
            print(f"  {track.number:2d}. {track.title} [{track.duration or '--:--'}]")


def cmd_info(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        m = api.read_manifest(path)
        size = _bundle_size(path)
        signed = _is_signed(path)
    except _DOMAIN_ERRORS as e:
        _err("info", e)
        return 3
    except OSError as e:
        _err("info", f"{path}: {e.strerror or e}")
        return 3

    if args.json:
        out = {"path": str(path), "manifest": dataclasses.asdict(m), "size": size, "signed": signed}
        print(json.dumps(out, indent=2, ensure_ascii=False))
    else:
        _print_info(m, size=size, signed=signed, show_tracks=bool(args.tracks))
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.exists():
        _err("describe", f"path not found: {path}")
        return 3
    try:
        data = read_manifest_bytes(path)
    except _DOMAIN_ERRORS as e:
        _err("describe", f"failed to read {MANIFEST_FILENAME}: {e}")
        return 3

    text = data.decode("utf-8", errors="replace")
    if not args.raw:
        print(f"# Manifest from: {path}")
        print("# ---")
    sys.stdout.write(text)
    if text and not text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def cmd_about(_: argparse.Namespace) -> int:
    """Print package identity info (human-readable)."""

    try:
        pkg_version = version("ricecake")
    except PackageNotFoundError:
        pkg_version = "0.0.0"

    pkg_name = "ricecake"
    pkg_summary = ""
    try:
        meta = metadata("ricecake")
        pkg_name = str(meta.get("Name") or pkg_name)
        pkg_summary = str(meta.get("Summary") or "")
    except PackageNotFoundError:
        pass

    print(f"{pkg_name} {pkg_version}")
    if pkg_summary:
        print(pkg_summary)
    print(f"Format: {ABOUT_FORMAT}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rice",
        description="rice: validate, build and sign ricecake music bundles",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug detail to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # about
    p_about = subparsers.add_parser("about", help="Print package identity info")
    p_about.set_defaults(func=cmd_about)

    # validate
    p_validate = subparsers.add_parser("validate", help="Validate a bundle directory or .ricecake archive")
    p_validate.add_argument("path", help="Source directory or .ricecake archive")
    p_validate.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    p_validate.add_argument("--json", action="store_true", help="Output results as JSON")
    p_validate.add_argument("--quiet", action="store_true", help="Only show categories with failures")
    p_validate.set_defaults(func=cmd_validate)

    # build
    p_build = subparsers.add_parser("build", help="Create a .ricecake archive from a directory")
    p_build.add_argument("directory", help="Bundle source directory")
    p_build.add_argument("--output", default="", help="Output archive path (default: <directory>.ricecake)")
    p_build.add_argument("--no-validate", action="store_true", help="Skip validation before building")
    p_build.add_argument("--strict", action="store_true", help="Refuse to build when validation reports warnings")
    p_build.add_argument("--force", action="store_true", help="Overwrite an existing archive")
    p_build.set_defaults(func=cmd_build)

    # sign
    p_sign = subparsers.add_parser("sign", help="Add or replace the Ed25519 signature of an archive")
    p_sign.add_argument("bundle", help=".ricecake archive to sign")
    p_sign.add_argument("--key", default="", help="Path to private key file")
    p_sign.add_argument(
        "--key-env",
        default=DEFAULT_KEY_ENV,
        help=f"Environment variable holding a base64 private key (default: {DEFAULT_KEY_ENV})",
    )
    p_sign.set_defaults(func=cmd_sign)

    # verify
    p_verify = subparsers.add_parser("verify", help="Verify an archive's signature")
    p_verify.add_argument("bundle", help=".ricecake archive to verify")
    p_verify.add_argument("--pubkey", required=True, help="Path to public key file")
    p_verify.add_argument("--json", action="store_true", help="Output result as JSON")
    p_verify.set_defaults(func=cmd_verify)

    # keygen
    p_keygen = subparsers.add_parser("keygen", help="Generate an Ed25519 key pair for signing")
    p_keygen.add_argument("--output", default="", help="Output directory for keys (default: ~/.rice)")
    p_keygen.set_defaults(func=cmd_keygen)

    # info
    p_info = subparsers.add_parser("info", help="Display bundle information")
    p_info.add_argument("path", help="Source directory or .ricecake archive")
    p_info.add_argument("--json", action="store_true", help="Output as JSON")
    p_info.add_argument("--tracks", action="store_true", help="Show detailed track listing")
    p_info.set_defaults(func=cmd_info)

    # describe
    p_describe = subparsers.add_parser("describe", help="Print a bundle's manifest.yaml")
    p_describe.add_argument("path", help="Source directory or .ricecake archive")
    p_describe.add_argument("--raw", action="store_true", help="Print the YAML without a header")
    p_describe.set_defaults(func=cmd_describe)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    if not getattr(args, "func", None):
        parser.print_help()
        return 3
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
