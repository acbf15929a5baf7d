"""Pattern-based key point extraction from a synthesized summary."""

from __future__ import annotations

import re
from typing import List, Tuple

from policy_rag.summarizer.models import KeyPoint

MAX_KEY_POINTS = 10
DEDUPE_PREFIX_CHARS = 50

# Earlier rules win when two rules capture the same text.
KEY_POINT_PATTERNS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\[CRITICAL\]\s*:?\s*([^\n]+)", re.IGNORECASE), "critical"),
    (re.compile(r"(?:critical|urgent|important):\s*([^.\n]+)", re.IGNORECASE), "critical"),
    (re.compile(r"\[IMPORTANT\]\s*:?\s*([^\n]+)", re.IGNORECASE), "high"),
    (re.compile(r"(?:key\s+point|highlight|note):\s*([^.\n]+)", re.IGNORECASE), "high"),
    (re.compile(r"•\s*([^•\n]+)"), "medium"),
    (re.compile(r"^[ \t]*[-*][ \t]+([^\n]+)", re.MULTILINE), "medium"),
    (re.compile(r"^[ \t]*\d+\.\s+([^.\n]+)", re.MULTILINE), "medium"),
)

CATEGORY_PATTERNS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"coverage|limit|deductible", re.IGNORECASE), "coverage"),
    (re.compile(r"premium|rate|pricing", re.IGNORECASE), "pricing"),
    (re.compile(r"compliance|regulation|filing", re.IGNORECASE), "compliance"),
    (re.compile(r"risk|exposure", re.IGNORECASE), "risk"),
    (re.compile(r"action|recommend", re.IGNORECASE), "action"),
)


def categorize(text: str) -> str:
    for pattern, category in CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return "general"


_LEADING_LABEL_RE = re.compile(
    r"^(?:\[(?:critical|important)\]|(?:critical|urgent|important|key\s+point|highlight|note):)\s*:?\s*",
    re.IGNORECASE,
)


def _clean(text: str) -> str:
    text = text.strip().strip("*_ ").strip()
    return _LEADING_LABEL_RE.sub("", text).strip("*_ ").rstrip(".;:").strip()


def extract_key_points(summary: str) -> List[KeyPoint]:
    points: List[KeyPoint] = []
    seen = set()
    for pattern, importance in KEY_POINT_PATTERNS:
        for match in pattern.finditer(summary):
            text = _clean(match.group(1))
            if not text:
                continue
            key = text.lower()[:DEDUPE_PREFIX_CHARS]
            if key in seen:
                continue
            seen.add(key)
            points.append(KeyPoint(text=text, importance=importance, category=categorize(text)))
    return points[:MAX_KEY_POINTS]
