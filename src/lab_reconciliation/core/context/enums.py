# ============================================================================
# src/lab_reconciliation/core/context/enums.py
# ============================================================================
"""
Reconciliation Enums
- Special value kinds
- Result status
- Match methods
- Validation severity / issue types
- Merge resolutions
"""

from enum import Enum

class ValueKind(str, Enum):
    LESS_THAN = "less_than"          # "<500", "≤5"
    GREATER_THAN = "greater_than"    # ">1000", "≥2"
    FLAGGED = "flagged"              # "*14", "14.5 H"
    QUALITATIVE = "qualitative"      # "Positive", "음성"
    NOT_APPLICABLE = "not_applicable"
    BLANK = "blank"                  # "", "-"

class ResultStatus(str, Enum):
    HIGH = "High"
    LOW = "Low"
    NORMAL = "Normal"
    UNKNOWN = "Unknown"

class MatchMethod(str, Enum):
    EXACT = "exact"
    SIMILARITY = "similarity"
    NORMALIZED = "normalized"
    ASSISTED = "assisted"

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class IssueType(str, Enum):
    OUT_OF_BIOLOGICAL_RANGE = "out_of_biological_range"
    UNUSUAL_VALUE = "unusual_value"
    POSSIBLE_OCR_ERROR = "possible_ocr_error"
    MISSING_REQUIRED = "missing_required"
    IMPOSSIBLE_VALUE = "impossible_value"

class MergeResolution(str, Enum):
    USE_SOURCE = "source"
    USE_TARGET = "target"
