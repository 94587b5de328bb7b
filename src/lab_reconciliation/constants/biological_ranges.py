# ============================================================================
# src/lab_reconciliation/constants/biological_ranges.py
# ============================================================================
"""
Biological plausibility ranges.

These are the widest values a measurement can physically take, used to catch
extraction errors. They are NOT reference ranges: a lab's printed normal range
is carried on each result line and is never compared against this table.

Keys are normalized item codes (uppercase, alphanumeric only).
Critical thresholds mark clinically urgent values, not data-quality problems.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class BiologicalRange:
    min: float
    max: float
    unit: str
    critical_low: Optional[float] = None
    critical_high: Optional[float] = None


_RANGES = {
    # CBC
    "WBC": BiologicalRange(0.1, 200, "K/μL", critical_low=1, critical_high=50),
    "RBC": BiologicalRange(1, 15, "M/μL", critical_low=3, critical_high=10),
    "HGB": BiologicalRange(1, 25, "g/dL", critical_low=5, critical_high=20),
    "HCT": BiologicalRange(5, 80, "%", critical_low=15, critical_high=65),
    "MCV": BiologicalRange(30, 150, "fL"),
    "MCH": BiologicalRange(10, 50, "pg"),
    "MCHC": BiologicalRange(20, 45, "g/dL"),
    "PLT": BiologicalRange(5, 2000, "K/μL", critical_low=20, critical_high=1000),
    "RDW": BiologicalRange(8, 30, "%"),

    # WBC differential (%)
    "NEU": BiologicalRange(0, 100, "%"),
    "LYM": BiologicalRange(0, 100, "%"),
    "MONO": BiologicalRange(0, 100, "%"),
    "EOS": BiologicalRange(0, 100, "%"),
    "BASO": BiologicalRange(0, 100, "%"),

    # Kidney
    "BUN": BiologicalRange(0, 300, "mg/dL", critical_high=150),
    "CREA": BiologicalRange(0, 30, "mg/dL", critical_high=15),
    "CREATININE": BiologicalRange(0, 30, "mg/dL", critical_high=15),
    "SDMA": BiologicalRange(0, 100, "μg/dL"),

    # Liver
    "ALT": BiologicalRange(0, 5000, "U/L", critical_high=2000),
    "AST": BiologicalRange(0, 5000, "U/L", critical_high=2000),
    "ALP": BiologicalRange(0, 5000, "U/L"),
    "ALKP": BiologicalRange(0, 5000, "U/L"),
    "GGT": BiologicalRange(0, 500, "U/L"),
    "TBIL": BiologicalRange(0, 30, "mg/dL", critical_high=15),

    # Protein
    "TP": BiologicalRange(1, 15, "g/dL"),
    "ALB": BiologicalRange(0.5, 8, "g/dL", critical_low=1.5),
    "GLOB": BiologicalRange(0.5, 10, "g/dL"),

    # Glucose
    "GLU": BiologicalRange(10, 1000, "mg/dL", critical_low=40, critical_high=500),
    "GLUCOSE": BiologicalRange(10, 1000, "mg/dL", critical_low=40, critical_high=500),

    # Lipids
    "CHOL": BiologicalRange(50, 1000, "mg/dL"),
    "TG": BiologicalRange(10, 2000, "mg/dL"),
    "TRIGLYCERIDE": BiologicalRange(10, 2000, "mg/dL"),

    # Electrolytes
    "NA": BiologicalRange(100, 200, "mEq/L", critical_low=120, critical_high=160),
    "SODIUM": BiologicalRange(100, 200, "mEq/L", critical_low=120, critical_high=160),
    "K": BiologicalRange(1, 10, "mEq/L", critical_low=2.5, critical_high=7),
    "POTASSIUM": BiologicalRange(1, 10, "mEq/L", critical_low=2.5, critical_high=7),
    "CL": BiologicalRange(70, 150, "mEq/L"),
    "CHLORIDE": BiologicalRange(70, 150, "mEq/L"),
    "CA": BiologicalRange(4, 20, "mg/dL", critical_low=6, critical_high=14),
    "CALCIUM": BiologicalRange(4, 20, "mg/dL", critical_low=6, critical_high=14),
    "P": BiologicalRange(1, 20, "mg/dL"),
    "PHOSPHORUS": BiologicalRange(1, 20, "mg/dL"),
    "MG": BiologicalRange(0.5, 5, "mg/dL"),
    "MAGNESIUM": BiologicalRange(0.5, 5, "mg/dL"),

    # Pancreas
    "LIPASE": BiologicalRange(0, 5000, "U/L"),
    "AMYLASE": BiologicalRange(0, 5000, "U/L"),
    "CPL": BiologicalRange(0, 2000, "μg/L"),
    "SPECCPL": BiologicalRange(0, 2000, "μg/L"),

    # Coagulation
    "PT": BiologicalRange(5, 60, "sec"),
    "APTT": BiologicalRange(10, 120, "sec"),
    "FIB": BiologicalRange(50, 1000, "mg/dL"),

    # Urinalysis
    "USG": BiologicalRange(1.000, 1.100, ""),
    "URINEPH": BiologicalRange(4, 10, ""),
}

# Read-only view handed to validators
BIOLOGICAL_RANGES: Mapping[str, BiologicalRange] = MappingProxyType(_RANGES)

# Items whose measured value can legitimately be exactly zero
ZERO_PLAUSIBLE_ITEMS = frozenset({"BASO", "EOS"})

# Items exempt from the 1/l/I glyph confusion heuristic (values naturally near 1)
GLYPH_CHECK_EXEMPT_ITEMS = frozenset({"USG"})

# Components of the WBC differential, in report order
WBC_DIFFERENTIAL_ITEMS = ("NEU", "LYM", "MONO", "EOS", "BASO")
