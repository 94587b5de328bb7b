# ============================================================================
# src/lab_reconciliation/processors/deduplicator.py
# ============================================================================
"""
Batch Deduplicator & Status Computer

One measurement session is often extracted from several documents with
overlapping coverage, so several raw items can land on the same canonical id.
We keep one line per canonical id:

- first item wins by default
- a kept zero is replaced by a later non-zero reading
- a kept null is replaced by a later non-null reading

Later documents can improve a reading, never overwrite a meaningful one.
Items still null after the pass produce no line.
"""

import logging
from typing import Dict, List, Optional

from ..core.context import ResolvedItem, ResultStatus, TestResultLine


logger = logging.getLogger(__name__)


def compute_status(
    value: Optional[float],
    ref_min: Optional[float],
    ref_max: Optional[float]
) -> ResultStatus:
    """
    Compare a value against the source's own reference range.

    Returns:
        High / Low / Normal, or Unknown if the value or either bound is missing
    """
    if value is None or ref_min is None or ref_max is None:
        return ResultStatus.UNKNOWN
    if value > ref_max:
        return ResultStatus.HIGH
    if value < ref_min:
        return ResultStatus.LOW
    return ResultStatus.NORMAL


def _should_replace(kept: ResolvedItem, candidate: ResolvedItem) -> bool:
    kept_value = kept.numeric
    new_value = candidate.numeric

    if kept_value is None:
        return new_value is not None
    if kept_value == 0:
        return new_value is not None and new_value != 0
    return False


def dedupe_items(items: List[ResolvedItem]) -> List[ResolvedItem]:
    """Collapse items per canonical id in arrival order. Result keeps first-seen order."""
    kept: Dict[str, ResolvedItem] = {}

    for item in items:
        current = kept.get(item.canonical_id)
        if current is None:
            kept[item.canonical_id] = item
            continue

        if _should_replace(current, item):
            logger.debug(
                f"{item.canonical_id}: replacing {current.numeric} "
                f"({current.raw.source_document}) with {item.numeric} ({item.raw.source_document})"
            )
            kept[item.canonical_id] = item

    return list(kept.values())


def to_result_line(item: ResolvedItem, record_id: Optional[str] = None) -> TestResultLine:
    value = item.numeric
    return TestResultLine(
        record_id=record_id,
        canonical_id=item.canonical_id,
        value=value,
        ref_min=item.ref_min,
        ref_max=item.ref_max,
        status=compute_status(value, item.ref_min, item.ref_max),
        unit=item.unit,
        raw_name=item.raw.name,
        raw_value=item.parsed.raw,
        ref_text=item.raw.ref_text,
        source_document=item.raw.source_document,
        mapping_confidence=item.mapping_confidence,
        warnings=list(item.warnings),
    )


def reconcile_batch(
    items: List[ResolvedItem],
    record_id: Optional[str] = None
) -> List[TestResultLine]:
    """
    Deduplicate resolved items and build result lines with status.

    Args:
        items: Resolved items in document arrival order
        record_id: Header id to stamp on lines (None when not yet persisted)

    Returns:
        At most one line per canonical id. Items without a numeric value are dropped.
    """
    lines = []
    dropped = 0

    for item in dedupe_items(items):
        if item.numeric is None:
            dropped += 1
            continue
        lines.append(to_result_line(item, record_id))

    logger.info(
        f"Reconciled {len(items)} items into {len(lines)} lines "
        f"({len(items) - len(lines) - dropped} duplicates, {dropped} without value)"
    )
    return lines
