"""Security sentinel — redacts credentials before text reaches logs or errors.

Git echoes remote URLs (with any embedded user-info) and sometimes request
headers into its stderr; provider tokens can also show up in commands.  All
patterns are pre-compiled; the sentinel prefers over-redaction.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

# ── Compiled patterns ───────────────────────────────────────────────────────

_SECRET_PATTERNS: list[tuple[str, re.Pattern[str], str]] = [
    # user:password@ or token@ inside URLs
    ("URL_USERINFO", re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE), r"\g<scheme>[REDACTED]@"),
    # GitHub tokens
    ("GITHUB_TOKEN", re.compile(r"gh[pousr]_[A-Za-z0-9_]{20,}"), "[REDACTED]"),
    ("GITHUB_PAT", re.compile(r"github_pat_[A-Za-z0-9_]{20,}"), "[REDACTED]"),
    # GitLab personal / project access tokens
    ("GITLAB_TOKEN", re.compile(r"glpat-[A-Za-z0-9_\-]{20,}"), "[REDACTED]"),
    # Authorization headers (git http.extraHeader, curl traces)
    (
        "AUTH_HEADER",
        re.compile(r"(?P<prefix>Authorization:\s*(?:Basic|Bearer|token)\s+)[A-Za-z0-9+/=_\-.]+", re.IGNORECASE),
        r"\g<prefix>[REDACTED]",
    ),
    ("PRIVATE_TOKEN", re.compile(r"(?P<prefix>PRIVATE-TOKEN:\s*)\S+", re.IGNORECASE), r"\g<prefix>[REDACTED]"),
]


# ── Result type ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SanitizedResult:
    """Outcome of a sanitization pass."""

    clean_text: str
    redaction_count: int


# ── Public API ──────────────────────────────────────────────────────────────


def sanitize(text: str) -> SanitizedResult:
    """Replace every credential-looking fragment in *text* with ``[REDACTED]``."""
    count = 0
    result = text

    for _label, pattern, replacement in _SECRET_PATTERNS:
        result, num = pattern.subn(replacement, result)
        count += num

    return SanitizedResult(clean_text=result, redaction_count=count)


def redact(text: str) -> str:
    return sanitize(text).clean_text


def redact_command(parts: Iterable[str]) -> list[str]:
    """Sanitize each argument of a command line for display."""
    return [redact(part) for part in parts]
