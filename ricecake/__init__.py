"""Ricecake release bundles: validation, packaging and detached signatures.

A ricecake is a self-contained music release (audio, cover art, liner notes,
metadata) distributed as a single archive file.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version


def __getattr__(name: str):
    if name == "__version__":
        try:
            return version("ricecake")
        except PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)
