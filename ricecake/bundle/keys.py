"""Ed25519 key loading and generation.

Private keys are accepted as:
  - PEM armor "ED25519 PRIVATE KEY" holding raw bytes (64: seed || public, or a 32-byte seed)
  - PKCS#8 "PRIVATE KEY" PEM
  - 64 hex chars (seed)
  - raw binary (64 or 32 bytes)
  - base64 text of the raw bytes
From the environment only base64 is accepted.

Every failure raises SigningKeyError before any signing is attempted. Key
bytes never appear in messages or logs.
"""

from __future__ import annotations

import base64
import binascii
import os
import re
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ricecake.core.errors import SigningKeyError


DEFAULT_KEY_ENV = "RICE_SIGNING_KEY"
PRIVATE_KEY_FILENAME = "private.key"
PUBLIC_KEY_FILENAME = "public.key"

SEED_SIZE = 32
PRIVATE_KEY_SIZE = 64
PUBLIC_KEY_SIZE = 32

_PEM_RE = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----(.*?)-----END \1-----", re.DOTALL)
_HEX_CHARS = frozenset(b"0123456789abcdefABCDEF")


def _pem_block(data: bytes) -> tuple[str, bytes] | None:
    m = _PEM_RE.search(data)
    if m is None:
        return None
    label = m.group(1).decode("ascii")
    body = b"".join(ln.strip() for ln in m.group(2).splitlines() if ln.strip() and b":" not in ln)
    try:
        return label, base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SigningKeyError("decode", f"failed to decode PEM block {label!r}") from e


def _is_hex(s: bytes, length: int) -> bool:
    return len(s) == length and all(c in _HEX_CHARS for c in s)


def _b64(text: bytes, what: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SigningKeyError("decode", f"failed to decode {what}: not PEM, hex or base64") from e


def private_key_from_raw(raw: bytes) -> Ed25519PrivateKey:
    if len(raw) == PRIVATE_KEY_SIZE:
        key = Ed25519PrivateKey.from_private_bytes(raw[:SEED_SIZE])
        derived = key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )
        if derived != raw[SEED_SIZE:]:
            raise SigningKeyError("decode", "private key public half does not match its seed")
        return key
    if len(raw) == SEED_SIZE:
        return Ed25519PrivateKey.from_private_bytes(raw)
    raise SigningKeyError(
        "size", f"invalid key size: expected {PRIVATE_KEY_SIZE} (or {SEED_SIZE}) bytes, got {len(raw)}"
    )


def public_key_from_raw(raw: bytes) -> Ed25519PublicKey:
    if len(raw) != PUBLIC_KEY_SIZE:
        raise SigningKeyError("size", f"invalid public key size: expected {PUBLIC_KEY_SIZE} bytes, got {len(raw)}")
    return Ed25519PublicKey.from_public_bytes(raw)


def parse_private_key(data: bytes) -> Ed25519PrivateKey:
    block = _pem_block(data)
    if block is not None:
        label, raw = block
        if label == "ED25519 PRIVATE KEY":
            return private_key_from_raw(raw)
        if label == "PRIVATE KEY":
            try:
                key = serialization.load_pem_private_key(data, password=None)
            except ValueError as e:
                raise SigningKeyError("decode", "failed to decode PKCS#8 private key") from e
            if not isinstance(key, Ed25519PrivateKey):
                raise SigningKeyError("type", "private key is not Ed25519")
            return key
        raise SigningKeyError("type", f"unexpected key type: {label}")

    trimmed = data.strip()
    if _is_hex(trimmed, SEED_SIZE * 2):
        return private_key_from_raw(bytes.fromhex(trimmed.decode("ascii")))
    if len(data) in (SEED_SIZE, PRIVATE_KEY_SIZE):
        return private_key_from_raw(data)
    return private_key_from_raw(_b64(trimmed, "private key"))


def parse_public_key(data: bytes) -> Ed25519PublicKey:
    block = _pem_block(data)
    if block is not None:
        label, raw = block
        if label == "ED25519 PUBLIC KEY":
            return public_key_from_raw(raw)
        if label == "PUBLIC KEY":
            try:
                key = serialization.load_pem_public_key(data)
            except ValueError as e:
                raise SigningKeyError("decode", "failed to decode public key") from e
            if not isinstance(key, Ed25519PublicKey):
                raise SigningKeyError("type", "public key is not Ed25519")
            return key
        raise SigningKeyError("type", f"unexpected key type: {label}")

    trimmed = data.strip()
    if _is_hex(trimmed, PUBLIC_KEY_SIZE * 2):
        return public_key_from_raw(bytes.fromhex(trimmed.decode("ascii")))
    if len(data) == PUBLIC_KEY_SIZE:
        return public_key_from_raw(data)
    return public_key_from_raw(_b64(trimmed, "public key"))


def _read_key_file(path: Path) -> bytes:
    if not path.exists():
        raise SigningKeyError("missing", f"key file not found: {path}")
    try:
        return path.read_bytes()
    except OSError as e:
        raise SigningKeyError("unreadable", f"failed to read key file: {path}: {e.strerror or e}") from e


def load_private_key(path: Path) -> Ed25519PrivateKey:
    return parse_private_key(_read_key_file(path))


def load_public_key(path: Path) -> Ed25519PublicKey:
    return parse_public_key(_read_key_file(path))


def load_private_key_from_env(env_var: str = DEFAULT_KEY_ENV) -> Ed25519PrivateKey:
    value = os.environ.get(env_var, "").strip()
    if not value:
        raise SigningKeyError("missing", f"environment variable {env_var} is not set")
    return private_key_from_raw(_b64(value.encode("ascii", errors="replace"), f"key from environment {env_var}"))


def generate_keypair() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


def _armor(label: str, raw: bytes) -> bytes:
    b64 = base64.b64encode(raw).decode("ascii")
    lines = [b64[i:i + 64] for i in range(0, len(b64), 64)]
    return ("\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----"]) + "\n").encode("ascii")


def private_key_raw(key: Ed25519PrivateKey) -> bytes:
    """Return seed || public (64 bytes)."""

    seed = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return seed + public_key_raw(key.public_key())


def public_key_raw(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)


def save_keypair(key: Ed25519PrivateKey, output_dir: Path) -> tuple[Path, Path]:
    """Write private.key (0600) and public.key (0644); refuses to overwrite either."""

    output_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
    private_path = output_dir / PRIVATE_KEY_FILENAME
    public_path = output_dir / PUBLIC_KEY_FILENAME
    for p in (private_path, public_path):
        if p.exists():
            raise FileExistsError(f"key already exists at {p} (remove it first to generate new keys)")

    fd = os.open(private_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(_armor("ED25519 PRIVATE KEY", private_key_raw(key)))

    public_path.write_bytes(_armor("ED25519 PUBLIC KEY", public_key_raw(key.public_key())))
    os.chmod(public_path, 0o644)
    return private_path, public_path
