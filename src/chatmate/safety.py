"""Keyword safety filter.

A plain substring blocklist over the lower-cased message. It is a demo
guardrail, not a security boundary: paraphrases slip through and innocent
words that contain a keyword ("information" contains "format") are blocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BLOCKED_KEYWORDS = (
    "delete all files",
    "rm -rf",
    "shutdown",
    "format",
    "password",
    "credit card",
    "ssn",
    "social security",
)


@dataclass(frozen=True)
class SafetyResult:
    ok: bool
    reason: str | None = None
    matched_keyword: str | None = None


class SafetyFilter:
    """First-match substring check against an ordered keyword list."""

    def __init__(self, keywords: tuple[str, ...] | list[str] = BLOCKED_KEYWORDS) -> None:
        self.keywords = tuple(k.lower() for k in keywords)

    def check(self, text: str) -> SafetyResult:
        lower = text.lower()
        for kw in self.keywords:
            if kw in lower:
                logger.info("Safety block on keyword %r", kw)
                return SafetyResult(
                    ok=False,
                    reason=f'Request blocked for safety or privacy: "{kw}"',
                    matched_keyword=kw,
                )
        return SafetyResult(ok=True)
