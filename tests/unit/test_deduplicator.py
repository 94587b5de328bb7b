# ============================================================================
# FILE: tests/unit/test_deduplicator.py
# ============================================================================
"""
Unit tests for batch deduplication and status computation
"""

from lab_reconciliation.core.context import RawMeasurement, ResolvedItem, ResultStatus
from lab_reconciliation.processors.deduplicator import (
    compute_status,
    dedupe_items,
    reconcile_batch,
    to_result_line,
)
from lab_reconciliation.processors.parsing import parse_value


def _item(canonical_id, value, source="doc-1", ref_min=None, ref_max=None):
    raw = RawMeasurement(canonical_id.upper(), value, source_document=source)
    return ResolvedItem(
        canonical_id=canonical_id,
        raw=raw,
        parsed=parse_value(value),
        ref_min=ref_min,
        ref_max=ref_max,
    )


def test_compute_status():
    """Test status against the source's own reference range"""
    assert compute_status(12, 5, 10) == ResultStatus.HIGH
    assert compute_status(3, 5, 10) == ResultStatus.LOW
    assert compute_status(7, 5, 10) == ResultStatus.NORMAL
    assert compute_status(5, 5, 10) == ResultStatus.NORMAL
    assert compute_status(10, 5, 10) == ResultStatus.NORMAL


def test_compute_status_unknown():
    """Test missing bounds or value give Unknown"""
    assert compute_status(7, None, 10) == ResultStatus.UNKNOWN
    assert compute_status(7, 5, None) == ResultStatus.UNKNOWN
    assert compute_status(None, 5, 10) == ResultStatus.UNKNOWN


def test_first_reading_wins():
    """Test a later non-zero reading never overwrites an earlier one"""
    kept = dedupe_items([_item("bun", "25", "doc-1"), _item("bun", "30", "doc-2")])
    assert len(kept) == 1
    assert kept[0].numeric == 25.0
    assert kept[0].raw.source_document == "doc-1"


def test_zero_replaced_by_nonzero():
    """Test a kept zero yields to a later real reading"""
    kept = dedupe_items([_item("alt", "0", "doc-1"), _item("alt", "45", "doc-2")])
    assert kept[0].numeric == 45.0


def test_null_replaced_by_value():
    """Test a kept blank yields to a later reading, including zero"""
    kept = dedupe_items([_item("eos", "-", "doc-1"), _item("eos", "0", "doc-2")])
    assert kept[0].numeric == 0.0
    assert kept[0].raw.source_document == "doc-2"


def test_zero_not_replaced_by_null_or_zero():
    """Test nothing better does not replace a zero"""
    kept = dedupe_items([_item("alt", "0", "doc-1"), _item("alt", "", "doc-2"), _item("alt", 0, "doc-3")])
    assert kept[0].raw.source_document == "doc-1"


def test_first_seen_order_preserved():
    """Test output order follows first appearance"""
    kept = dedupe_items([
        _item("bun", "25"), _item("alt", "0"), _item("crea", "1.2"), _item("alt", "40"),
    ])
    assert [i.canonical_id for i in kept] == ["bun", "alt", "crea"]


def test_to_result_line_carries_provenance():
    """Test result lines keep raw name, value and source"""
    line = to_result_line(_item("bun", "25", "scan-A", ref_min=7, ref_max=20), record_id="r1")
    assert line.record_id == "r1"
    assert line.value == 25.0
    assert line.status == ResultStatus.HIGH
    assert line.raw_name == "BUN"
    assert line.raw_value == "25"
    assert line.source_document == "scan-A"


def test_reconcile_batch_drops_valueless():
    """Test qualitative and blank readings produce no line"""
    lines = reconcile_batch([
        _item("bun", "25"),
        _item("glu", "Negative"),
        _item("crea", None),
        _item("bun", "25.0", "doc-2"),
    ])
    assert [l.canonical_id for l in lines] == ["bun"]
    assert lines[0].value == 25.0


def test_reconcile_batch_keeps_comparator_number():
    """Test comparator values persist their number"""
    lines = reconcile_batch([_item("crea", "<0.5", ref_min=0.5, ref_max=1.5)])
    assert lines[0].value == 0.5
    assert lines[0].status == ResultStatus.NORMAL
