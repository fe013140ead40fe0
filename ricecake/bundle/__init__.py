"""Archive packaging and detached signatures for bundle archives."""

from __future__ import annotations
