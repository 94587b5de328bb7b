# ============================================================================
# src/lab_reconciliation/matching/garbage_filter.py
# ============================================================================
"""
Garbage Name Filter

OCR table extraction regularly hands us cells that are not item names at all:
a stray value, a reference range, a column header. These are dropped before
resolution so they never end up as unmapped items.
"""

import re
from dataclasses import dataclass
from typing import Optional


GARBAGE_NUMERIC_PATTERNS = [
    re.compile(r'^[<>≤≥±]\s*\d'),                          # "<5", "≥10"
    re.compile(r'^\d+[.,]?\d*\s*[-~]\s*\d+[.,]?\d*'),       # "5.6-8.8", "0~3"
    re.compile(r'^\d+[.,]?\d*$'),                           # "123", "4.5"
    re.compile(r'^\d+[.,]?\d*\s*%$'),                       # "45%"
    re.compile(r'^[-+]?\d+[.,]?\d*$'),                      # "-2.5"
]

GARBAGE_LABELS = frozenset(label.upper() for label in [
    "기타", "결과", "항목", "단위", "참고치", "검사항목", "검사결과", "정상범위",
    "Result", "Unit", "Reference", "Normal", "Range", "Value", "Test",
])


@dataclass(frozen=True)
class GarbageCheck:
    is_garbage: bool
    reason: Optional[str] = None
    has_truncated_bracket: bool = False


def check_item_name(raw_name: Optional[str]) -> GarbageCheck:
    """
    Classify a raw item name.

    Returns:
        GarbageCheck; has_truncated_bracket flags names like "ALT (GPT" that
        were cut off mid-parenthesis but are otherwise usable
    """
    trimmed = (raw_name or '').strip()

    if not trimmed:
        return GarbageCheck(True, "empty name")

    for pattern in GARBAGE_NUMERIC_PATTERNS:
        if pattern.match(trimmed):
            return GarbageCheck(True, "numeric or range value")

    if trimmed.upper() in GARBAGE_LABELS:
        return GarbageCheck(True, "table label")

    if len(trimmed) == 1 and not trimmed.isalpha():
        return GarbageCheck(True, "single non-letter character")

    truncated = trimmed.count('(') > trimmed.count(')')
    return GarbageCheck(False, has_truncated_bracket=truncated)


def is_garbage_name(raw_name: Optional[str]) -> bool:
    return check_item_name(raw_name).is_garbage
