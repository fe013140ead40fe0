"""Rule validator: six independent check categories over a bundle source tree."""

from __future__ import annotations

from .base import CATEGORY_ORDER, Category, CheckResult, Severity, ValidationReport
from .runner import validate_tree

__all__ = [
    "CATEGORY_ORDER",
    "Category",
    "CheckResult",
    "Severity",
    "ValidationReport",
    "validate_tree",
]
