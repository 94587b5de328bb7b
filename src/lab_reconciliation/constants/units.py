# ============================================================================
# src/lab_reconciliation/constants/units.py
# ============================================================================
"""
Unit spelling tables.

UNIT_ALIASES maps each standard unit to the spellings seen on lab reports.
TRUNCATED_UNIT_CORRECTIONS repairs units cut off at the edge of a table cell.
"""

UNIT_ALIASES = {
    # Concentration
    "mg/dL": ["mg/dl", "mg/100ml", "mg/100mL", "mg%", "mg %", "MG/DL"],
    "g/dL": ["g/dl", "g/100ml", "g/100mL", "g%", "G/DL"],
    "μg/dL": ["ug/dl", "ug/dL", "µg/dL", "µg/dl", "mcg/dL", "mcg/dl"],
    "μg/L": ["ug/l", "ug/L", "µg/L", "µg/l", "mcg/L", "ng/ml", "ng/mL"],
    "mmol/L": ["mmol/l", "mM", "MMOL/L"],

    # Enzyme activity
    "U/L": ["u/l", "IU/L", "iu/l", "IU/l", "U/l"],

    # Cell counts
    "K/μL": ["K/uL", "K/ul", "k/ul", "K/µL", "10^3/uL", "10^3/μL", "x10^3/uL", "10x9/L", "10^9/L", "x10E3/uL"],
    "M/μL": ["M/uL", "M/ul", "m/ul", "M/µL", "10^6/uL", "10^6/μL", "x10^6/uL", "10x12/L", "10^12/L", "x10E6/uL"],

    # Percentage
    "%": ["percent", "pct"],

    # Volume / mass
    "fL": ["fl", "FL", "µm3", "um3"],
    "pg": ["PG", "pg/cell"],

    # Electrolytes
    "mEq/L": ["meq/l", "mEq/l", "MEQ/L", "mmol(+)/L"],

    # Pressure
    "mmHg": ["mmhg", "MMHG", "mm Hg"],

    # Time
    "sec": ["s", "secs", "seconds", "SEC"],
}

# Prefix left after OCR truncation -> complete unit
TRUNCATED_UNIT_CORRECTIONS = {
    "mmH": "mmHg",
    "mg/d": "mg/dL",
    "g/d": "g/dL",
    "U/": "U/L",
    "K/u": "K/μL",
    "K/μ": "K/μL",
    "10x9/": "10x9/L",
    "10x12/": "10x12/L",
    "mmol/": "mmol/L",
    "ug/d": "ug/dL",
    "ng/m": "ng/ml",
    "pmol/": "pmol/L",
}
