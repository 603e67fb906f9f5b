"""Canonicalization of program output for comparison."""

from __future__ import annotations

import re

from codeduel.core.constants import DIAGNOSTIC_MARKERS

_CRLF = re.compile(r"\r+\n")


def _is_diagnostic(line: str) -> bool:
    lowered = line.lower()
    return any(marker in lowered for marker in DIAGNOSTIC_MARKERS)


def normalize_text(raw: str | None) -> str:
    """Normalize line endings and trim surrounding whitespace."""
    if not raw:
        return ""
    return _CRLF.sub("\n", raw).strip()


def normalize_output(raw: str | None) -> str:
    """Normalize raw execution output.

    Blank lines and compiler/executor diagnostic lines are dropped, line
    endings are unified and the result is trimmed. Applying it twice gives
    the same text as applying it once.
    """
    if not raw:
        return ""
    lines = _CRLF.sub("\n", raw).split("\n")
    kept = [line for line in lines if line.strip() and not _is_diagnostic(line)]
    return "\n".join(kept).strip()
