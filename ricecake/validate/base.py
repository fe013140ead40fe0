from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Category(str, Enum):
    STRUCTURE = "Structure"
    MANIFEST = "Manifest"
    AUDIO = "Audio"
    IMAGES = "Images"
    SECURITY = "Security"
    COPYRIGHT = "Copyright"


CATEGORY_ORDER = (
    Category.STRUCTURE,
    Category.MANIFEST,
    Category.AUDIO,
    Category.IMAGES,
    Category.SECURITY,
    Category.COPYRIGHT,
)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class CheckResult:
    """One check outcome.

    A passing result has severity None; a failing one carries ERROR or
    WARNING. There is no separate passed flag, so "passed with a severity"
    cannot be constructed.
    """

    category: Category
    check: str
    severity: Severity | None = None
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.severity is None

    @classmethod
    def ok(cls, category: Category, check: str) -> "CheckResult":
        return cls(category=category, check=check)

    @classmethod
    def error(cls, category: Category, check: str, message: str) -> "CheckResult":
        return cls(category=category, check=check, severity=Severity.ERROR, message=message)

    @classmethod
    def warning(cls, category: Category, check: str, message: str) -> "CheckResult":
        return cls(category=category, check=check, severity=Severity.WARNING, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "check": self.check,
            "passed": self.passed,
            "severity": self.severity.value if self.severity is not None else None,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    path: str
    strict: bool = False
    results: list[CheckResult] = field(default_factory=list)

    def add(self, results: list[CheckResult]) -> None:
        self.results.extend(results)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.severity is Severity.ERROR)

    @property
    def warnings(self) -> int:
        return sum(1 for r in self.results if r.severity is Severity.WARNING)

    def blocking_count(self, *, strict: bool | None = None) -> int:
        use_strict = self.strict if strict is None else strict
        return self.errors + (self.warnings if use_strict else 0)

    def is_buildable(self, *, strict: bool | None = None) -> bool:
        """True iff there are no errors (and, under strict mode, no warnings)."""

        return self.blocking_count(strict=strict) == 0

    def by_category(self, category: Category) -> list[CheckResult]:
        return [r for r in self.results if r.category is category]

    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "strict": self.strict,
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
            "warnings": self.warnings,
            "valid": self.is_buildable(),
        }
