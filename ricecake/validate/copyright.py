from __future__ import annotations

import re

from ricecake.protocol.manifest import COPYRIGHT_FILENAME, MAX_COPYRIGHT_FILE

from .base import Category, CheckResult
from .context import ValidationContext


C = Category.COPYRIGHT

_HOLDER_LABEL_RE = re.compile(r"copyright\s+holder\s*:\s*\S", re.IGNORECASE)
_HOLDER_LINE_RE = re.compile(r"copyright\s+(?:\(c\)\s*|©\s*)?\d{4}(?:\s*-\s*\d{4})?[,\s]+\S", re.IGNORECASE)


def has_holder(content: str) -> bool:
    if "©" in content or "(c)" in content.lower():
        return True
    return _HOLDER_LABEL_RE.search(content) is not None or _HOLDER_LINE_RE.search(content) is not None


def run(ctx: ValidationContext) -> list[CheckResult]:
    path = ctx.root / COPYRIGHT_FILENAME
    if not path.is_file():
        # Reported by the Structure checks.
        return []

    try:
        data = path.read_bytes()
    except OSError as e:
        return [CheckResult.error(C, "readable", f"cannot read {COPYRIGHT_FILENAME}: {e.strerror or e}")]

    if not data.strip():
        return [CheckResult.error(C, "file not empty", f"{COPYRIGHT_FILENAME} is empty")]

    out: list[CheckResult] = [CheckResult.ok(C, "file not empty")]
    content = data.decode("utf-8", errors="replace")

    if "copyright" in content.lower():
        out.append(CheckResult.ok(C, "contains copyright declaration"))
    else:
        out.append(CheckResult.error(C, "contains copyright declaration", "must contain 'Copyright' declaration"))

    if has_holder(content):
        out.append(CheckResult.ok(C, "contains copyright holder"))
    else:
        out.append(CheckResult.error(C, "contains copyright holder", "must specify copyright holder"))

    if len(data) > MAX_COPYRIGHT_FILE:
        out.append(
            CheckResult.error(C, "file size", f"{COPYRIGHT_FILENAME} exceeds {MAX_COPYRIGHT_FILE // 1024} KB limit")
        )
    else:
        out.append(CheckResult.ok(C, "file size"))

    return out
