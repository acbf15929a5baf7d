"""Ordered pattern tables used to split and classify policy text.

Each table is a tuple of ``(pattern, category, priority)`` entries so the
classification rules can be audited and tested without running the chunker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class BoundaryPattern:
    pattern: re.Pattern[str]
    category: str
    priority: int


@dataclass(frozen=True, slots=True)
class SectionPattern:
    pattern: re.Pattern[str]
    section: str
    priority: int
    content_type: str


def _line_marker(body: str) -> re.Pattern[str]:
    return re.compile(rf"^[ \t]*{body}", re.IGNORECASE | re.MULTILINE)


# Domain markers. A boundary is placed at the start of the matching line.
DOMAIN_BOUNDARY_PATTERNS: Tuple[BoundaryPattern, ...] = (
    BoundaryPattern(_line_marker(r"SECTION\s+[IVX\d]+[\s.:]"), "section", 10),
    BoundaryPattern(_line_marker(r"PART\s+[IVX\d]+[\s.:]"), "part", 10),
    BoundaryPattern(
        re.compile(r"^[ \t]*COVERAGE\s+[A-Z]\b[\s.:–-]", re.MULTILINE),
        "coverage",
        9,
    ),
    BoundaryPattern(_line_marker(r"LIMITS?\s+OF\s"), "limits", 9),
    BoundaryPattern(_line_marker(r"DEDUCTIBLES?[\s.:]"), "deductibles", 8),
    BoundaryPattern(_line_marker(r"EXCLUSIONS?[\s.:]"), "exclusions", 8),
    BoundaryPattern(_line_marker(r"ENDORSEMENTS?[\s.:]"), "endorsements", 7),
    BoundaryPattern(_line_marker(r"CONDITIONS?[\s.:]"), "conditions", 6),
    BoundaryPattern(_line_marker(r"DEFINITIONS?[\s.:]"), "definitions", 6),
)

# Generic structure, applied in order only to spans that are still oversized.
# Blank lines split after the gap; the others split before the matching line.
GENERAL_BOUNDARY_PATTERNS: Tuple[BoundaryPattern, ...] = (
    BoundaryPattern(re.compile(r"\n[ \t]*\n\s*"), "paragraph", 4),
    BoundaryPattern(re.compile(r"^#{1,3}\s", re.MULTILINE), "heading", 3),
    BoundaryPattern(re.compile(r"^[A-Z][A-Z \t]{5,}:", re.MULTILINE), "caps_heading", 2),
    BoundaryPattern(re.compile(r"^\d+\.\s+[A-Z]", re.MULTILINE), "numbered", 1),
)

SPLIT_AFTER_MATCH = frozenset({"paragraph"})

SECTION_PATTERNS: Tuple[SectionPattern, ...] = (
    SectionPattern(
        re.compile(r"^SECTION\s+[IVX\d]+[\s.:]+DECLARATIONS?", re.IGNORECASE | re.MULTILINE),
        "declarations",
        10,
        "general",
    ),
    SectionPattern(re.compile(r"DECLARATIONS?\s+PAGE", re.IGNORECASE), "declarations", 10, "general"),
    SectionPattern(re.compile(r"INSURING\s+AGREEMENT", re.IGNORECASE), "insuring_agreement", 9, "coverage_grant"),
    SectionPattern(re.compile(r"COVERAGE\s+[A-Z]\b[\s.:–-]+"), "insuring_agreement", 9, "coverage_grant"),
    SectionPattern(re.compile(r"^DEFINITIONS?[\s.:]", re.IGNORECASE | re.MULTILINE), "definitions", 7, "definition"),
    SectionPattern(re.compile(r"\"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\"\s+means", re.IGNORECASE), "definitions", 7, "definition"),
    SectionPattern(re.compile(r"EXCLUSIONS?[\s.:]", re.IGNORECASE), "exclusions", 8, "exclusion"),
    SectionPattern(
        re.compile(r"(?:WE|THIS POLICY)\s+(?:DO|DOES)\s+NOT\s+(?:COVER|PAY|PROVIDE)", re.IGNORECASE),
        "exclusions",
        8,
        "exclusion",
    ),
    SectionPattern(re.compile(r"^CONDITIONS?[\s.:]", re.IGNORECASE | re.MULTILINE), "conditions", 6, "condition"),
    SectionPattern(re.compile(r"DUTIES\s+(?:AFTER|IN\s+THE\s+EVENT)", re.IGNORECASE), "conditions", 6, "condition"),
    SectionPattern(
        re.compile(r"LIMITS?\s+OF\s+(?:LIABILITY|INSURANCE|COVERAGE)", re.IGNORECASE),
        "limits",
        9,
        "coverage_limit",
    ),
    SectionPattern(re.compile(r"\$[\d,]+(?:\s+(?:per|each|aggregate))", re.IGNORECASE), "limits", 8, "coverage_limit"),
    SectionPattern(re.compile(r"DEDUCTIBLES?[\s.:]", re.IGNORECASE), "deductibles", 8, "coverage_deductible"),
    SectionPattern(re.compile(r"ENDORSEMENT[\s.:]", re.IGNORECASE), "endorsements", 5, "endorsement"),
    SectionPattern(re.compile(r"SCHEDULE[\s.:]", re.IGNORECASE), "schedule", 6, "general"),
    SectionPattern(re.compile(r"PREMIUM|BASE\s+RATE|\bRATE\b", re.IGNORECASE), "schedule", 7, "rate_info"),
)

# Signals that raise a span's importance, counted independently.
IMPORTANCE_SIGNALS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\$[\d,]+(?:\s+(?:per|each|aggregate))", re.IGNORECASE),
    re.compile(r"limit|coverage|deductible|exclusion", re.IGNORECASE),
    re.compile(r"mandatory|required|must|shall", re.IGNORECASE),
    re.compile(r"premium|rate|pricing|cost", re.IGNORECASE),
    re.compile(r"compliance|regulation|filing", re.IGNORECASE),
)

CRITICAL_BY_SECTION = frozenset({"limits", "deductibles", "exclusions"})

# Section implied by a domain boundary marker when no classification rule fires.
MARKER_SECTIONS = {
    "coverage": ("insuring_agreement", "coverage_grant"),
    "limits": ("limits", "coverage_limit"),
    "deductibles": ("deductibles", "coverage_deductible"),
    "exclusions": ("exclusions", "exclusion"),
    "endorsements": ("endorsements", "endorsement"),
    "conditions": ("conditions", "condition"),
    "definitions": ("definitions", "definition"),
}


@dataclass(frozen=True, slots=True)
class SectionMatch:
    section: str
    content_type: str
    priority: int


GENERAL_MATCH = SectionMatch("general", "general", 0)


def classify_section(text: str, marker: Optional[str] = None) -> SectionMatch:
    """Return the highest-priority section rule matching *text*.

    Ties keep the earlier rule in :data:`SECTION_PATTERNS`.
    """
    best = GENERAL_MATCH
    for rule in SECTION_PATTERNS:
        if rule.priority > best.priority and rule.pattern.search(text):
            best = SectionMatch(rule.section, rule.content_type, rule.priority)
    if best is GENERAL_MATCH and marker in MARKER_SECTIONS:
        section, content_type = MARKER_SECTIONS[marker]
        return SectionMatch(section, content_type, 0)
    return best


def assess_importance(text: str, match: SectionMatch) -> str:
    if match.section in CRITICAL_BY_SECTION:
        return "critical"
    signals = sum(1 for pattern in IMPORTANCE_SIGNALS if pattern.search(text))
    if signals >= 3 or match.priority >= 8:
        return "critical"
    if signals >= 2 or match.priority >= 6:
        return "high"
    if signals >= 1 or match.priority >= 4:
        return "medium"
    return "low"
