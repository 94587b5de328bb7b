# src/lab_reconciliation/validators/__init__.py

from .plausibility import (
    PlausibilityValidator,
    normalize_item_code,
    check_plausibility,
    get_plausibility_range,
)

__all__ = [
    "PlausibilityValidator",
    "normalize_item_code",
    "check_plausibility",
    "get_plausibility_range",
]
