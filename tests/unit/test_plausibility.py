# ============================================================================
# FILE: tests/unit/test_plausibility.py
# ============================================================================
"""
Unit tests for the biological plausibility validator
"""

import pytest

from lab_reconciliation.constants import BIOLOGICAL_RANGES, BiologicalRange
from lab_reconciliation.core.context import IssueType, Severity
from lab_reconciliation.validators.plausibility import (
    PlausibilityValidator,
    check_plausibility,
    get_plausibility_range,
    normalize_item_code,
)


def test_normalize_item_code():
    """Test item names collapse to range table keys"""
    assert normalize_item_code("Spec cPL") == "SPECCPL"
    assert normalize_item_code("urine pH") == "URINEPH"
    assert normalize_item_code(None) == ""


def test_ranges_are_read_only():
    """Test the built-in range table cannot be modified"""
    with pytest.raises(TypeError):
        BIOLOGICAL_RANGES["WBC"] = BiologicalRange(0, 1, "x")


def test_valid_value_has_no_issues():
    """Test an ordinary value passes cleanly"""
    outcome = PlausibilityValidator().validate("BUN", 25.0, "mg/dL")
    assert outcome.is_valid is True
    assert outcome.warnings == []


def test_out_of_range_suggests_decimal_shift():
    """Test a decimal error is flagged with a corrected value"""
    outcome = PlausibilityValidator().validate("HGB", 142.0, "g/dL")

    assert outcome.is_valid is True
    assert outcome.has_warning(IssueType.OUT_OF_BIOLOGICAL_RANGE)
    issue = next(w for w in outcome.warnings if w.type == IssueType.OUT_OF_BIOLOGICAL_RANGE)
    assert issue.severity == Severity.HIGH
    assert "Recheck value: 142 g/dL" in issue.suggestions
    assert "Possible decimal shift: 14.2 g/dL" in issue.suggestions


def test_wbc_far_above_range():
    """Test WBC 500 is a high-severity out-of-range warning with suggestions"""
    outcome = PlausibilityValidator().validate("WBC", 500.0)

    assert outcome.is_valid is True
    issue = next(w for w in outcome.warnings if w.type == IssueType.OUT_OF_BIOLOGICAL_RANGE)
    assert issue.type.value == "out_of_biological_range"
    assert issue.severity == Severity.HIGH
    assert issue.suggestions == ["Recheck value: 500 K/μL", "Possible decimal shift: 50 K/μL"]


def test_missing_decimal_point_pattern():
    """Test a value over ten times the maximum is a likely OCR error"""
    outcome = PlausibilityValidator().validate("WBC", 2500.0)
    ocr = [w for w in outcome.warnings if w.type == IssueType.POSSIBLE_OCR_ERROR]
    assert len(ocr) == 1
    assert ocr[0].suggestions == ["250", "25"]


def test_critical_threshold():
    """Test crossing a critical limit adds a high-severity warning"""
    outcome = PlausibilityValidator().validate("K", 7.5, "mEq/L")
    unusual = [w for w in outcome.warnings if w.type == IssueType.UNUSUAL_VALUE]
    assert len(unusual) == 1
    assert unusual[0].severity == Severity.HIGH


def test_zero_is_suspicious_for_most_items():
    """Test exact zero warns unless zero is plausible for the item"""
    validator = PlausibilityValidator()
    assert validator.validate("BUN", 0).has_warning(IssueType.POSSIBLE_OCR_ERROR)
    assert not validator.validate("BASO", 0).has_warning(IssueType.POSSIBLE_OCR_ERROR)


def test_one_glyph_pattern():
    """Test a low value containing 1 is flagged as possible l/I confusion"""
    outcome = PlausibilityValidator().validate("TP", 1.0)
    assert not outcome.has_warning(IssueType.POSSIBLE_OCR_ERROR)

    outcome = PlausibilityValidator().validate("ALB", 0.1)
    messages = [w.message for w in outcome.warnings if w.type == IssueType.POSSIBLE_OCR_ERROR]
    assert any("1/l/I" in m for m in messages)


def test_urine_specific_gravity_exempt_from_glyph_check():
    """Test USG values around 1.0 are not flagged"""
    outcome = PlausibilityValidator().validate("USG", 1.015)
    assert outcome.warnings == []


def test_unknown_item_negative_value():
    """Test unknown items only get the sign check"""
    validator = PlausibilityValidator()
    assert validator.validate("Mystery", 999.0).warnings == []
    outcome = validator.validate("Mystery", -3.0)
    assert outcome.has_warning(IssueType.UNUSUAL_VALUE)


def test_empty_value_is_error():
    """Test a missing value excludes the item"""
    outcome = PlausibilityValidator().validate("BUN", "  ")
    assert outcome.is_valid is False
    assert outcome.errors[0].type == IssueType.MISSING_REQUIRED


def test_unreadable_text_warns():
    """Test text that isn't a recognizable value"""
    outcome = PlausibilityValidator().validate("BUN", "l2.5O")
    assert outcome.is_valid is True
    assert outcome.has_warning(IssueType.POSSIBLE_OCR_ERROR)
    assert outcome.suggestions


def test_qualitative_text_passes():
    """Test recognized non-numeric values are accepted"""
    outcome = PlausibilityValidator().validate("BUN", "<5")
    assert outcome.is_valid is True
    assert outcome.warnings == []


def test_suggest_correction():
    """Test decimal shift suggestions"""
    validator = PlausibilityValidator()
    assert validator.suggest_correction("HGB", 142.0) == pytest.approx(14.2)
    assert validator.suggest_correction("HGB", 1420.0) == pytest.approx(14.2)
    assert validator.suggest_correction("NA", 14.2) == pytest.approx(142.0)
    assert validator.suggest_correction("HGB", 14.2) is None
    assert validator.suggest_correction("Mystery", 5.0) is None


def test_custom_ranges():
    """Test an injected range table replaces the default"""
    validator = PlausibilityValidator(ranges={"FOO": BiologicalRange(1, 2, "u")})
    assert validator.validate("foo", 5.0).has_warning(IssueType.OUT_OF_BIOLOGICAL_RANGE)
    assert validator.validate("BUN", 5000.0).warnings == []


# ============================================================================
# Composite checks
# ============================================================================

def test_wbc_differential_ok():
    """Test a differential summing to ~100"""
    outcome = PlausibilityValidator().validate_wbc_differential(60, 30, 6, 3, 1)
    assert outcome.warnings == []


def test_wbc_differential_medium_deviation():
    """Test a deviation between the two tolerances"""
    outcome = PlausibilityValidator().validate_wbc_differential(60, 30, 6, 10, 1)
    assert outcome.warnings[0].severity == Severity.MEDIUM
    assert outcome.warnings[0].item_code == "WBCDIFF"


def test_wbc_differential_high_deviation():
    """Test a large deviation"""
    outcome = PlausibilityValidator().validate_wbc_differential(40, 30, 6, 3, 1)
    assert outcome.warnings[0].severity == Severity.HIGH


def test_wbc_differential_incomplete_is_skipped():
    """Test the check needs all five components"""
    outcome = PlausibilityValidator().validate_wbc_differential(40, 30, None, 3, 1)
    assert outcome.warnings == []


def test_ag_ratio():
    """Test A/G ratio computation and range"""
    validator = PlausibilityValidator()

    ratio, outcome = validator.validate_ag_ratio(3.5, 3.0)
    assert ratio == 1.17
    assert outcome.warnings == []

    ratio, outcome = validator.validate_ag_ratio(4.0, 1.0)
    assert ratio == 4.0
    assert outcome.has_warning(IssueType.UNUSUAL_VALUE)


def test_ag_ratio_zero_globulin():
    """Test zero globulin is an error against GLOB"""
    ratio, outcome = PlausibilityValidator().validate_ag_ratio(3.5, 0)
    assert ratio is None
    assert outcome.is_valid is False
    assert outcome.errors[0].item_code == "GLOB"


def test_validate_composites_runs_available_checks():
    """Test composites run only when their components are present"""
    validator = PlausibilityValidator()
    results = validator.validate_composites({"ALB": 3.0, "GLOB": 3.0})
    assert set(results) == {"ag_ratio"}

    results = validator.validate_composites({
        "NEU": 60, "LYM": 30, "MONO": 6, "EOS": 3, "BASO": 1, "BUN": 20,
    })
    assert set(results) == {"wbc_differential"}


def test_validate_batch():
    """Test multiple values at once"""
    results = PlausibilityValidator().validate_batch({
        "BUN": (20.0, "mg/dL"),
        "HGB": (142.0, "g/dL"),
    })
    assert results["BUN"].warnings == []
    assert results["HGB"].has_warning(IssueType.OUT_OF_BIOLOGICAL_RANGE)


def test_convenience_functions():
    """Test module-level helpers"""
    assert check_plausibility("HGB", 14.2) is True
    assert check_plausibility("HGB", 142.0) is False
    assert get_plausibility_range("wbc").unit == "K/μL"
    assert get_plausibility_range("Mystery") is None
