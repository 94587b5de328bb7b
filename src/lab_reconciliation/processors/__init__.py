# src/lab_reconciliation/processors/__init__.py

from .parsing import (
    parse_value,
    parse_reference_range,
    ReferenceRange,
    correct_truncated_unit,
    normalize_unit,
)
from .deduplicator import compute_status, dedupe_items, reconcile_batch

__all__ = [
    "parse_value",
    "parse_reference_range",
    "ReferenceRange",
    "correct_truncated_unit",
    "normalize_unit",
    "compute_status",
    "dedupe_items",
    "reconcile_batch",
]
