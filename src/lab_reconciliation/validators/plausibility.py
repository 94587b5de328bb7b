# ============================================================================
# src/lab_reconciliation/validators/plausibility.py
# ============================================================================
"""
Biological Plausibility Checks

Catches extraction errors (decimal point mistakes, misread glyphs, garbage text).
Different from reference ranges - these are "physically possible" boundaries.

Example:
- WBC 500 K/μL → out_of_biological_range (likely meant 50.0)
- WBC 2.1 K/μL → PASS (low but possible)

Warnings never block a measurement. Errors (empty value, impossible ratio)
exclude the affected item from its batch.
"""

import logging
import re
from typing import Dict, Mapping, Optional, Tuple, Union

from ..config import threshold_settings
from ..constants import (
    BIOLOGICAL_RANGES,
    BiologicalRange,
    GLYPH_CHECK_EXEMPT_ITEMS,
    WBC_DIFFERENTIAL_ITEMS,
    ZERO_PLAUSIBLE_ITEMS,
)
from ..core.context import (
    IssueType,
    Severity,
    Unparsed,
    ValidationIssue,
    ValidationOutcome,
)
from ..processors.parsing import parse_value


logger = logging.getLogger(__name__)


def normalize_item_code(name: str) -> str:
    """Uppercase alphanumeric form used as the range table key ("Spec cPL" -> "SPECCPL")."""
    return re.sub(r'[^A-Z0-9]', '', (name or '').upper())


class PlausibilityValidator:
    """
    Check lab values against biologically plausible ranges.

    Plausibility ranges are WIDER than reference ranges.
    They catch obvious errors like:
    - Decimal point mistakes (14.2 → 142)
    - Letters read as digits (O → 0, l → 1)
    - Text that isn't a value at all

    Args:
        ranges: Read-only mapping of item code -> BiologicalRange
        config: Optional overrides for differential tolerances
    """

    def __init__(
        self,
        ranges: Optional[Mapping[str, BiologicalRange]] = None,
        config: Optional[Dict] = None
    ):
        self.ranges = ranges if ranges is not None else BIOLOGICAL_RANGES
        self.config = config or {}
        self.differential_warn_tolerance = self.config.get(
            'differential_warn_tolerance', threshold_settings.DIFFERENTIAL_WARN_TOLERANCE
        )
        self.differential_high_tolerance = self.config.get(
            'differential_high_tolerance', threshold_settings.DIFFERENTIAL_HIGH_TOLERANCE
        )

    def validate(
        self,
        name_hint: str,
        value: Union[float, int, str, None],
        unit: Optional[str] = None
    ) -> ValidationOutcome:
        """
        Validate a single measurement.

        Args:
            name_hint: Canonical item name (normalized to an item code internally)
            value: Numeric value, or the raw text of a non-numeric value
            unit: Unit as reported, used in messages only

        Returns:
            ValidationOutcome with warnings, errors and suggestions
        """
        code = normalize_item_code(name_hint)

        if value is None or isinstance(value, str):
            return self._validate_text(code, value)

        outcome = ValidationOutcome()
        value = float(value)
        rng = self.ranges.get(code)

        # Unknown items only get the sign check
        if rng is None:
            if value < 0:
                outcome.add_warning(ValidationIssue(
                    type=IssueType.UNUSUAL_VALUE,
                    message=f"{name_hint}: negative value {value:g}",
                    severity=Severity.MEDIUM,
                    item_code=code,
                ))
            return outcome

        unit_label = unit or rng.unit

        if value < rng.min or value > rng.max:
            suggestions = [f"Recheck value: {value:g} {unit_label}".rstrip()]
            corrected = self.suggest_correction(name_hint, value)
            if corrected is not None:
                suggestions.append(f"Possible decimal shift: {corrected:g} {unit_label}".rstrip())

            outcome.add_warning(ValidationIssue(
                type=IssueType.OUT_OF_BIOLOGICAL_RANGE,
                message=(
                    f"{name_hint}: {value:g} {unit_label} outside plausible range "
                    f"{rng.min:g}-{rng.max:g} {rng.unit}"
                ).rstrip(),
                severity=Severity.HIGH,
                item_code=code,
                suggestions=suggestions,
            ))
            logger.warning(f"{code}: value {value} outside plausible range {rng.min}-{rng.max}")

        if rng.critical_low is not None and value < rng.critical_low:
            outcome.add_warning(ValidationIssue(
                type=IssueType.UNUSUAL_VALUE,
                message=f"{name_hint}: {value:g} below critical threshold {rng.critical_low:g}",
                severity=Severity.HIGH,
                item_code=code,
            ))
        if rng.critical_high is not None and value > rng.critical_high:
            outcome.add_warning(ValidationIssue(
                type=IssueType.UNUSUAL_VALUE,
                message=f"{name_hint}: {value:g} above critical threshold {rng.critical_high:g}",
                severity=Severity.HIGH,
                item_code=code,
            ))

        self._check_ocr_patterns(name_hint, code, value, rng, outcome)
        return outcome

    def _validate_text(self, code: str, value: Optional[str]) -> ValidationOutcome:
        outcome = ValidationOutcome()

        if value is None or not value.strip():
            outcome.add_error(ValidationIssue(
                type=IssueType.MISSING_REQUIRED,
                message=f"{code or 'item'}: value is empty",
                severity=Severity.HIGH,
                item_code=code,
            ))
            return outcome

        if isinstance(parse_value(value), Unparsed):
            outcome.add_warning(ValidationIssue(
                type=IssueType.POSSIBLE_OCR_ERROR,
                message=f"{code or 'item'}: unrecognized value format '{value}'",
                severity=Severity.MEDIUM,
                item_code=code,
                suggestions=[f"Check the source document for {code or 'this item'}"],
            ))
        return outcome

    def _check_ocr_patterns(
        self,
        name_hint: str,
        code: str,
        value: float,
        rng: BiologicalRange,
        outcome: ValidationOutcome
    ):
        # Missing decimal point
        if value > rng.max * 10:
            outcome.add_warning(ValidationIssue(
                type=IssueType.POSSIBLE_OCR_ERROR,
                message=f"{name_hint}: {value:g} may be missing a decimal point",
                severity=Severity.MEDIUM,
                item_code=code,
                suggestions=[f"{value / 10:g}", f"{value / 100:g}"],
            ))

        # Letter O read as zero
        if value == 0 and code not in ZERO_PLAUSIBLE_ITEMS:
            outcome.add_warning(ValidationIssue(
                type=IssueType.POSSIBLE_OCR_ERROR,
                message=f"{name_hint}: exact zero is implausible, a letter may have been read as 0",
                severity=Severity.LOW,
                item_code=code,
            ))

        # l / I read as 1
        if (
            '1' in f"{value:g}"
            and value < 2
            and code not in GLYPH_CHECK_EXEMPT_ITEMS
            and value < rng.min
        ):
            outcome.add_warning(ValidationIssue(
                type=IssueType.POSSIBLE_OCR_ERROR,
                message=f"{name_hint}: {value:g} below plausible minimum, possible 1/l/I confusion",
                severity=Severity.LOW,
                item_code=code,
            ))

    def suggest_correction(self, name_hint: str, value: float) -> Optional[float]:
        """
        Suggest corrected value if a decimal shift puts it back in range.

        Common errors:
        - Decimal point shift: 142.0 → 14.2
        - Double shift: 1420 → 14.2
        - Shift left: 1.42 → 14.2

        Returns:
            Suggested corrected value, or None if no correction found
        """
        rng = self.ranges.get(normalize_item_code(name_hint))
        if rng is None:
            return None

        if rng.min <= value <= rng.max:
            return None

        if value > rng.max:
            for divisor in (10, 100):
                corrected = value / divisor
                if rng.min <= corrected <= rng.max:
                    logger.info(f"{name_hint}: suggesting decimal correction {value} → {corrected}")
                    return corrected

        if value < rng.min:
            corrected = value * 10
            if rng.min <= corrected <= rng.max:
                logger.info(f"{name_hint}: suggesting decimal correction {value} → {corrected}")
                return corrected

        return None

    # ------------------------------------------------------------------
    # Composite checks
    # ------------------------------------------------------------------
    def validate_wbc_differential(
        self,
        neu: Optional[float],
        lym: Optional[float],
        mono: Optional[float],
        eos: Optional[float],
        baso: Optional[float]
    ) -> ValidationOutcome:
        """
        Check that the WBC differential percentages add up to ~100%.

        All five components are required; with any missing the check is skipped.
        """
        outcome = ValidationOutcome()
        components = (neu, lym, mono, eos, baso)
        if any(c is None for c in components):
            logger.debug("Skipping WBC differential check, incomplete components")
            return outcome

        total = round(sum(components), 2)
        deviation = abs(total - 100)
        if deviation > self.differential_warn_tolerance:
            severity = Severity.HIGH if deviation > self.differential_high_tolerance else Severity.MEDIUM
            outcome.add_warning(ValidationIssue(
                type=IssueType.UNUSUAL_VALUE,
                message=f"WBC differential sums to {total:g}% (expected ~100%)",
                severity=severity,
                item_code="WBCDIFF",
                suggestions=[f"Recheck {', '.join(WBC_DIFFERENTIAL_ITEMS)}"],
            ))
        return outcome

    def validate_ag_ratio(
        self,
        albumin: float,
        globulin: float
    ) -> Tuple[Optional[float], ValidationOutcome]:
        """
        Albumin/Globulin ratio plausibility.

        Returns:
            (ratio rounded to 2 places or None, outcome)
        """
        outcome = ValidationOutcome()
        if globulin == 0:
            outcome.add_error(ValidationIssue(
                type=IssueType.IMPOSSIBLE_VALUE,
                message="Globulin is 0, A/G ratio cannot be computed",
                severity=Severity.HIGH,
                item_code="GLOB",
            ))
            return None, outcome

        ratio = round(albumin / globulin, 2)
        if ratio < 0.3 or ratio > 3.0:
            outcome.add_warning(ValidationIssue(
                type=IssueType.UNUSUAL_VALUE,
                message=f"A/G ratio {ratio:g} outside plausible range 0.3-3.0",
                severity=Severity.MEDIUM,
                item_code="AGRATIO",
                suggestions=["Recheck ALB and GLOB"],
            ))
        return ratio, outcome

    def validate_composites(self, values: Mapping[str, float]) -> Dict[str, ValidationOutcome]:
        """
        Run every composite check whose components are present.

        Args:
            values: {item name or code: value}

        Returns:
            {"wbc_differential" | "ag_ratio": outcome} for checks that ran
        """
        by_code = {normalize_item_code(name): value for name, value in values.items()}
        results = {}

        if all(code in by_code for code in WBC_DIFFERENTIAL_ITEMS):
            results["wbc_differential"] = self.validate_wbc_differential(
                *(by_code[code] for code in WBC_DIFFERENTIAL_ITEMS)
            )

        if "ALB" in by_code and "GLOB" in by_code:
            _, results["ag_ratio"] = self.validate_ag_ratio(by_code["ALB"], by_code["GLOB"])

        return results

    def validate_batch(self, values: Dict[str, Tuple[Union[float, str], Optional[str]]]) -> Dict[str, ValidationOutcome]:
        """
        Check multiple values at once.

        Args:
            values: {name: (value, unit), ...}
        """
        return {
            name: self.validate(name, value, unit)
            for name, (value, unit) in values.items()
        }

    def get_range(self, name_hint: str) -> Optional[BiologicalRange]:
        return self.ranges.get(normalize_item_code(name_hint))


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def check_plausibility(name_hint: str, value: float, unit: Optional[str] = None) -> bool:
    """
    Quick plausibility check.

    Returns:
        True if the value raises no out_of_biological_range warning
    """
    outcome = PlausibilityValidator().validate(name_hint, value, unit)
    return not outcome.has_warning(IssueType.OUT_OF_BIOLOGICAL_RANGE)


def get_plausibility_range(name_hint: str) -> Optional[BiologicalRange]:
    """Get plausibility range for a lab item, or None if unknown."""
    return PlausibilityValidator().get_range(name_hint)
