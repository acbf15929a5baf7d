"""Regex-based extraction of policy value mentions."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List

from policy_rag.summarizer.models import DocumentChunk, ExtractedEntity

MAX_ENTITIES_PER_CHUNK = 15
MAX_AGGREGATED_ENTITIES = 25
CONTEXT_CHARS = 100

_MONTHS = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

AMOUNT_RE = re.compile(
    r"\$[\d,]+(?:\.\d{2})?(?:\s+(?:per|each|aggregate|occurrence)\b)?", re.IGNORECASE
)
PERCENT_RE = re.compile(r"\b\d+(?:\.\d+)?%")
NUMERIC_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b")
NAMED_DATE_RE = re.compile(rf"\b{_MONTHS}\.?\s+\d{{1,2}},?\s+\d{{4}}\b", re.IGNORECASE)
STATE_RE = re.compile(r"\b[A-Z]{2}\b")
CODE_RE = re.compile(
    r"\b(?:[Cc]overage|COVERAGE|[Ff]orm|FORM)\s+[A-Z]{1,2}\b(?:\s+\d{2}\s+\d{2})?"
)

JURISDICTIONS = frozenset(
    """
    AL AK AZ AR CA CO CT DE DC FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS
    MO MT NE NV NH NJ NM NY NC ND OH OK OR PA PR RI SC SD TN TX UT VT VA WA WV
    WI WY
    """.split()
)

_LIMIT_SUFFIX_RE = re.compile(r"per|each|aggregate|occurrence", re.IGNORECASE)
_CODE_PREFIX_RE = re.compile(r"^(?:coverage|form)\b", re.IGNORECASE)


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: Dict[str, str] = {}
    for value in values:
        seen.setdefault(value.lower(), value)
    return list(seen.values())


def extract_entities(text: str) -> List[str]:
    """Return up to 15 distinct value mentions found in *text*.

    Order follows the extraction families: amounts, percentages, dates,
    jurisdiction codes, then coverage and form codes.
    """
    found: List[str] = []
    found.extend(match.group(0).strip() for match in AMOUNT_RE.finditer(text))
    found.extend(PERCENT_RE.findall(text))
    found.extend(NUMERIC_DATE_RE.findall(text))
    found.extend(match.group(0) for match in NAMED_DATE_RE.finditer(text))
    found.extend(
        _dedupe(code for code in STATE_RE.findall(text) if code in JURISDICTIONS)
    )
    found.extend(match.group(0) for match in CODE_RE.finditer(text))
    return _dedupe(found)[:MAX_ENTITIES_PER_CHUNK]


def classify_entity(entity: str) -> str:
    if entity.startswith("$"):
        return "limit" if _LIMIT_SUFFIX_RE.search(entity) else "amount"
    if entity.endswith("%"):
        return "deductible"
    if NUMERIC_DATE_RE.fullmatch(entity) or NAMED_DATE_RE.fullmatch(entity):
        return "date"
    if re.fullmatch(r"[A-Z]{2}", entity):
        return "state"
    if _CODE_PREFIX_RE.match(entity):
        return "form"
    return "coverage"


def aggregate_entities(chunks: Iterable[DocumentChunk]) -> List[ExtractedEntity]:
    """Merge per-chunk mentions case-insensitively and rank by frequency."""
    merged: Dict[str, ExtractedEntity] = {}
    for chunk in chunks:
        for name in chunk.metadata.key_entities:
            key = name.lower()
            entity = merged.get(key)
            if entity is not None:
                entity.frequency += 1
                continue
            merged[key] = ExtractedEntity(
                name=name,
                type=classify_entity(name),
                context=chunk.content[:CONTEXT_CHARS],
            )
    ranked = sorted(merged.values(), key=lambda entity: entity.frequency, reverse=True)
    return ranked[:MAX_AGGREGATED_ENTITIES]
