# ============================================================================
# src/lab_reconciliation/config/thresholds_config.py
# ============================================================================
"""
Matching & Validation Thresholds
- Similarity acceptance floors (canonical names vs aliases)
- Normalized-name match confidence
- Assisted-matching acceptance
- Curation sweep merge threshold
- WBC differential tolerance
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class ThresholdSettings(BaseSettings):
    CANONICAL_SIMILARITY_FLOOR: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Minimum similarity for a canonical-name candidate to be accepted"
    )
    ALIAS_SIMILARITY_FLOOR: float = Field(
        default=60.0,
        ge=0.0, le=100.0,
        description="Minimum similarity for an alias candidate. Lower than canonical because aliases are curated."
    )
    NORMALIZED_MATCH_CONFIDENCE: float = Field(
        default=95.0,
        ge=0.0, le=100.0,
        description="Confidence assigned when names match after stripping punctuation and whitespace"
    )
    ASSISTED_MIN_CONFIDENCE: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Assisted-matching suggestions below this confidence are discarded"
    )
    SWEEP_MERGE_SIMILARITY: float = Field(
        default=80.0,
        ge=0.0, le=100.0,
        description="Unmapped items at or above this similarity are proposed for merge"
    )
    SWEEP_CANONICAL_FLOOR: float = Field(
        default=60.0,
        ge=0.0, le=100.0,
        description="Minimum canonical-name similarity considered during the unmapped sweep"
    )
    SWEEP_ALIAS_FLOOR: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Minimum alias similarity considered during the unmapped sweep"
    )
    DIFFERENTIAL_WARN_TOLERANCE: float = Field(
        default=5.0,
        ge=0.0, le=100.0,
        description="WBC differential sum may deviate this many percent from 100 before warning"
    )
    DIFFERENTIAL_HIGH_TOLERANCE: float = Field(
        default=10.0,
        ge=0.0, le=100.0,
        description="Beyond this deviation the differential warning becomes high severity"
    )

threshold_settings = ThresholdSettings()
