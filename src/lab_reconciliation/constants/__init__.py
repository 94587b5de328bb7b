# ============================================================================
# src/lab_reconciliation/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .biological_ranges import (
    BiologicalRange,
    BIOLOGICAL_RANGES,
    ZERO_PLAUSIBLE_ITEMS,
    GLYPH_CHECK_EXEMPT_ITEMS,
    WBC_DIFFERENTIAL_ITEMS,
)
from .units import UNIT_ALIASES, TRUNCATED_UNIT_CORRECTIONS

UNMAPPED_CATEGORY = "Unmapped"
