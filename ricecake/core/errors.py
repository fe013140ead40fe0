from __future__ import annotations

from pathlib import Path


class BundleIOError(OSError):
    """Raised when an operation cannot read or write part of a bundle.

    Carries the operation that failed (``validate``, ``hash``, ``pack``,
    ``unpack``, ``sign``, ``verify``, ``manifest``) and the offending path so
    callers can report both without parsing the message.
    """

    def __init__(self, operation: str, path: Path | str, reason: str) -> None:
        self.operation = operation
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{operation}: {reason}: {self.path}")


class ArchiveError(ValueError):
    """Raised for corrupt archives and entries that would escape the destination."""


class ManifestError(ValueError):
    """Raised when manifest.yaml cannot be parsed into the schema model."""


class SigningKeyError(ValueError):
    """Raised before any cryptographic operation when a key cannot be used.

    reason is one of: missing, unreadable, decode, size, type.
    """

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class SigningError(RuntimeError):
    """Raised when an archive cannot be signed (bad manifest, repack failure)."""
