# ============================================================================
# TEST 2: Reconciliation Constants
# ============================================================================

import pytest


def test_constants():
    """Test biological ranges and unit tables are loaded"""
    print("=" * 70)
    print("TEST 2: Reconciliation Constants")
    print("=" * 70)

    from lab_reconciliation.constants import (
        BIOLOGICAL_RANGES, UNIT_ALIASES, TRUNCATED_UNIT_CORRECTIONS,
        ZERO_PLAUSIBLE_ITEMS, WBC_DIFFERENTIAL_ITEMS, UNMAPPED_CATEGORY
    )

    print(f"✓ Biological ranges loaded: {len(BIOLOGICAL_RANGES)} items")
    print(f"  Example: Potassium = {BIOLOGICAL_RANGES['K']}")
    assert BIOLOGICAL_RANGES["K"].critical_low == 2.5
    assert BIOLOGICAL_RANGES["HGB"].max == 25

    print(f"\n✓ Unit aliases loaded: {len(UNIT_ALIASES)} standard units")
    assert "mg/dl" in UNIT_ALIASES["mg/dL"]

    print(f"\n✓ Truncated unit corrections: {len(TRUNCATED_UNIT_CORRECTIONS)}")
    assert TRUNCATED_UNIT_CORRECTIONS["mmH"] == "mmHg"

    assert ZERO_PLAUSIBLE_ITEMS == {"BASO", "EOS"}
    assert len(WBC_DIFFERENTIAL_ITEMS) == 5
    assert UNMAPPED_CATEGORY == "Unmapped"

    print("\n✅ Constants test PASSED\n")


def test_ranges_are_consistent():
    """Test every range and critical threshold is ordered"""
    from lab_reconciliation.constants import BIOLOGICAL_RANGES

    for code, bounds in BIOLOGICAL_RANGES.items():
        assert bounds.min <= bounds.max, code
        if bounds.critical_low is not None:
            assert bounds.min <= bounds.critical_low <= bounds.max, code
        if bounds.critical_high is not None:
            assert bounds.min <= bounds.critical_high <= bounds.max, code


def test_ranges_are_read_only():
    """Test the range table cannot be modified at runtime"""
    from lab_reconciliation.constants import BIOLOGICAL_RANGES, BiologicalRange

    with pytest.raises(TypeError):
        BIOLOGICAL_RANGES["NEW"] = BiologicalRange(0, 1, "")
