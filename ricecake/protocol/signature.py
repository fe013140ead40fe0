"""signature.sig: the detached signature artifact stored at the bundle root.

Layout (LF line endings)::

    -----BEGIN RICECAKE SIGNATURE-----
    Version: 1
    Bundle-ID: <bundle id>
    Created-At: <RFC3339 UTC>
    Tool-Version: <tool version>
    Hash-Algorithm: SHA-256
    Content-Hash: <base64 digest>

    <base64 signature>
    -----END RICECAKE SIGNATURE-----
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass


BEGIN_MARKER = "-----BEGIN RICECAKE SIGNATURE-----"
END_MARKER = "-----END RICECAKE SIGNATURE-----"
SIGNATURE_FORMAT_VERSION = 1

_HEADER_ORDER = ("Version", "Bundle-ID", "Created-At", "Tool-Version", "Hash-Algorithm", "Content-Hash")


@dataclass(frozen=True)
class SignatureRecord:
    bundle_id: str
    hash_algorithm: str
    content_hash_b64: str
    signature_b64: str
    tool_version: str
    created_at: str
    version: int = SIGNATURE_FORMAT_VERSION

    @property
    def content_hash(self) -> bytes:
        return base64.b64decode(self.content_hash_b64, validate=True)

    @property
    def signature(self) -> bytes:
        return base64.b64decode(self.signature_b64, validate=True)


def format_signature_record(record: SignatureRecord) -> str:
    lines = [
        BEGIN_MARKER,
        f"Version: {record.version}",
        f"Bundle-ID: {record.bundle_id}",
        f"Created-At: {record.created_at}",
        f"Tool-Version: {record.tool_version}",
        f"Hash-Algorithm: {record.hash_algorithm}",
        f"Content-Hash: {record.content_hash_b64}",
        "",
        record.signature_b64,
        END_MARKER,
    ]
    return "\n".join(lines) + "\n"


def _require_b64(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} missing/empty")
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"{label} must be valid base64") from e
    return value


def parse_signature_record(text: str) -> SignatureRecord:
    """Parse a signature block; raises ValueError on any structural defect."""

    lines = [ln.rstrip("\r") for ln in text.strip().split("\n")]
    if len(lines) < 3 or lines[0].strip() != BEGIN_MARKER or lines[-1].strip() != END_MARKER:
        raise ValueError("signature block markers missing")

    body = lines[1:-1]
    try:
        blank = body.index("")
    except ValueError as e:
        raise ValueError("signature block missing blank line before signature") from e

    headers: dict[str, str] = {}
    for ln in body[:blank]:
        key, sep, value = ln.partition(":")
        if not sep:
            raise ValueError(f"malformed signature header line: {ln!r}")
        key = key.strip()
        if key in headers:
            raise ValueError(f"duplicate signature header: {key}")
        headers[key] = value.strip()

    missing = [k for k in _HEADER_ORDER if k not in headers]
    if missing:
        raise ValueError("signature block missing headers: " + ", ".join(missing))

    try:
        version = int(headers["Version"])
    except ValueError as e:
        raise ValueError("signature Version must be an integer") from e
    if version != SIGNATURE_FORMAT_VERSION:
        raise ValueError(f"unsupported signature version: {version}")

    sig_b64 = "".join(ln.strip() for ln in body[blank + 1:])

    return SignatureRecord(
        bundle_id=headers["Bundle-ID"],
        hash_algorithm=headers["Hash-Algorithm"],
        content_hash_b64=_require_b64(headers["Content-Hash"], "Content-Hash"),
        signature_b64=_require_b64(sig_b64, "signature"),
        tool_version=headers["Tool-Version"],
        created_at=headers["Created-At"],
        version=version,
    )
