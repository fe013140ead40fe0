"""Bundle data formats: manifest.yaml schema model and the signature artifact.

This package holds data definitions only; no filesystem walking happens here
beyond reading a single manifest.
"""

from __future__ import annotations
