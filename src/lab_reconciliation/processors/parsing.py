# ============================================================================
# src/lab_reconciliation/processors/parsing.py
# ============================================================================
"""
Parsing utilities for extracted lab values.

- parse_value: raw value token -> Numeric | Special | Unparsed
- parse_reference_range: printed reference text -> ReferenceRange
- correct_truncated_unit / normalize_unit: unit cleanup

None of these raise on bad input. OCR output is noisy; a token we cannot
read degrades to Unparsed and validation decides what to do with it.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from ..constants import UNIT_ALIASES, TRUNCATED_UNIT_CORRECTIONS
from ..core.context import Numeric, ParsedValue, Special, Unparsed, ValueKind


_DECIMAL = r'\d+(?:\.\d*)?|\.\d+'

# Comma only counts as a thousands separator when followed by exactly 3 digits
_THOUSANDS_SEP = re.compile(r'(?<=\d),(?=\d{3}(?!\d))')

_PLAIN = re.compile(rf'^[-+]?(?:{_DECIMAL})$')
_COMPARATOR = re.compile(rf'^([<>≤≥＜＞])\s*(=?)\s*({_DECIMAL})$')
_FLAG_PREFIX = re.compile(rf'^\*+\s*({_DECIMAL})$')
_FLAG_SUFFIX = re.compile(
    rf'^({_DECIMAL})\s*(\*+|HH|LL|H|L|High|Low|CRITICAL)$',
    re.IGNORECASE
)
_QUALITATIVE = re.compile(
    r'^(양성|음성|positive|negative|pos|neg|reactive|non[-\s]?reactive|trace|'
    r'detected|not\s+detected|normal|abnormal|\+{1,4}|\([+\-−]\))$',
    re.IGNORECASE
)
_NOT_APPLICABLE = re.compile(r'^(n/?a|not\s+applicable)$', re.IGNORECASE)
_BLANK = re.compile(r'^[-–—−]?$')

_LESS_THAN = {'<', '≤', '＜'}


def _match_plain(text: str) -> Optional[ParsedValue]:
    if _PLAIN.match(text):
        return Numeric(float(text), raw=text)
    return None


def _match_comparator(text: str) -> Optional[ParsedValue]:
    match = _COMPARATOR.match(text)
    if not match:
        return None
    kind = ValueKind.LESS_THAN if match.group(1) in _LESS_THAN else ValueKind.GREATER_THAN
    return Special(kind, float(match.group(3)), raw=text)


def _match_flagged(text: str) -> Optional[ParsedValue]:
    match = _FLAG_PREFIX.match(text) or _FLAG_SUFFIX.match(text)
    if not match:
        return None
    return Special(ValueKind.FLAGGED, float(match.group(1)), raw=text)


def _match_qualitative(text: str) -> Optional[ParsedValue]:
    if _QUALITATIVE.match(text):
        return Special(ValueKind.QUALITATIVE, raw=text)
    return None


def _match_not_applicable(text: str) -> Optional[ParsedValue]:
    if _NOT_APPLICABLE.match(text):
        return Special(ValueKind.NOT_APPLICABLE, raw=text)
    return None


def _match_blank(text: str) -> Optional[ParsedValue]:
    if _BLANK.match(text):
        return Special(ValueKind.BLANK, raw=text)
    return None


# Evaluated in order, first hit wins
VALUE_RULES: List[Callable[[str], Optional[ParsedValue]]] = [
    _match_plain,
    _match_comparator,
    _match_flagged,
    _match_qualitative,
    _match_not_applicable,
    _match_blank,
]


def parse_value(raw: Any) -> ParsedValue:
    """
    Parse a raw value token into a typed value.

    Handles values like:
    - 12.5 / "12.5" / "1,390"  -> Numeric
    - "<500", "≥2"             -> Special(LESS_THAN / GREATER_THAN) with numeric
    - "*14", "14.5 H"          -> Special(FLAGGED) with numeric
    - "Negative", "음성"       -> Special(QUALITATIVE)
    - "N/A"                    -> Special(NOT_APPLICABLE)
    - "", "-", None            -> Special(BLANK)

    Anything else comes back as Unparsed.
    """
    if raw is None:
        return Special(ValueKind.BLANK, raw="")

    if isinstance(raw, bool):
        return Unparsed(str(raw))

    if isinstance(raw, (int, float)):
        if math.isnan(raw) or math.isinf(raw):
            return Unparsed(str(raw))
        return Numeric(float(raw), raw=str(raw))

    text = str(raw).strip()
    text = _THOUSANDS_SEP.sub('', text)

    for rule in VALUE_RULES:
        parsed = rule(text)
        if parsed is not None:
            return parsed

    return Unparsed(str(raw))


def describe_value(parsed: ParsedValue) -> str:
    """Short human-readable form used in warnings and logs."""
    if isinstance(parsed, Numeric):
        return f"{parsed.value:g}"
    if isinstance(parsed, Special):
        if parsed.numeric is not None:
            return f"{parsed.raw} ({parsed.kind.value} {parsed.numeric:g})"
        return f"{parsed.raw or '<blank>'} ({parsed.kind.value})"
    return f"{parsed.raw} (unparsed)"


# ============================================================================
# REFERENCE RANGES
# ============================================================================

@dataclass(frozen=True)
class ReferenceRange:
    min: Optional[float]
    max: Optional[float]
    original: str = ""
    is_valid: bool = False
    is_negative: bool = False

    def as_tuple(self) -> Tuple[Optional[float], Optional[float]]:
        return self.min, self.max


_RANGE = re.compile(r'^(-?\d+\.?\d*)\s*[-~–—]\s*(-?\d+\.?\d*)')
_UPPER_ONLY = re.compile(r'^[<≤＜]\s*=?\s*(\d+\.?\d*)')
_LOWER_ONLY = re.compile(r'^[>≥＞]\s*=?\s*(\d+\.?\d*)')
_NEGATIVE_RANGE = re.compile(r'^(음성|negative|non[-\s]?reactive|陰性|\([-−]\))', re.IGNORECASE)


def parse_reference_range(ref_str: Optional[str]) -> ReferenceRange:
    """
    Parse a printed reference range.

    Handles multiple formats:
    - "12.0-15.5", "-2~3", "4.5-11.0 x10E3/uL" (two-sided)
    - "<14", "≤100" (upper bound only)
    - ">5", "≥0" (lower bound only)
    - "Negative", "음성(-)" (qualitative, no bounds)

    One-sided ranges leave the other bound as None.
    """
    original = ref_str or ""
    text = original.strip()

    if not text or text in ('-', '−'):
        return ReferenceRange(None, None, original, is_valid=False)

    if _NEGATIVE_RANGE.match(text):
        return ReferenceRange(None, None, original, is_valid=True, is_negative=True)

    text = _THOUSANDS_SEP.sub('', text)

    match = _RANGE.match(text)
    if match:
        return ReferenceRange(float(match.group(1)), float(match.group(2)), original, is_valid=True)

    match = _UPPER_ONLY.match(text)
    if match:
        return ReferenceRange(None, float(match.group(1)), original, is_valid=True)

    match = _LOWER_ONLY.match(text)
    if match:
        return ReferenceRange(float(match.group(1)), None, original, is_valid=True)

    return ReferenceRange(None, None, original, is_valid=False)


# ============================================================================
# UNITS
# ============================================================================

_UNIT_LOOKUP = {
    alias.replace(' ', '').lower(): standard
    for standard, aliases in UNIT_ALIASES.items()
    for alias in aliases + [standard]
}


def correct_truncated_unit(unit: Optional[str]) -> Optional[str]:
    """Repair a unit cut off at a cell edge ("mg/d" -> "mg/dL")."""
    if not unit:
        return unit

    trimmed = unit.strip()
    if trimmed in TRUNCATED_UNIT_CORRECTIONS:
        return TRUNCATED_UNIT_CORRECTIONS[trimmed]

    for truncated, corrected in TRUNCATED_UNIT_CORRECTIONS.items():
        if trimmed.endswith(truncated) and len(trimmed) <= len(truncated) + 2:
            return trimmed[:-len(truncated)] + corrected

    return trimmed


def normalize_unit(unit: Optional[str]) -> str:
    """Map a unit spelling to its standard form. Unknown units pass through with whitespace removed."""
    if not unit:
        return ""
    cleaned = re.sub(r'\s+', '', unit.strip())
    return _UNIT_LOOKUP.get(cleaned.lower(), cleaned)


def units_equivalent(unit1: Optional[str], unit2: Optional[str]) -> bool:
    return normalize_unit(unit1).lower() == normalize_unit(unit2).lower()
