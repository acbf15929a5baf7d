"""Token estimation helpers.

All budgets in the pipeline use the character heuristic (about four
characters per token for English policy text).
"""

from __future__ import annotations

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)
