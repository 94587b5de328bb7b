# ============================================================================
# FILE: tests/unit/test_unmapped_sweep.py
# ============================================================================
"""
Unit tests for the unmapped item sweep
"""

import pytest

from lab_reconciliation.core.context import TestRecordHeader, TestResultLine
from lab_reconciliation.curation import (
    SweepAction,
    SweepProposal,
    UnmappedSweep,
    analyze_unmapped,
    apply_cleanup,
)


@pytest.fixture
def unmapped_ids(store):
    """One Unmapped item for each kind of proposal, by name"""
    store.create_header(TestRecordHeader("r1"))
    items = {
        name: store.ensure_unmapped_item(name)
        for name in ("Creatinin", "Zzqx Factor", "Mystery Marker Q", "Glucosee Lv")
    }
    store.insert_lines([
        TestResultLine(record_id="r1", canonical_id=items["Creatinin"].id, value=1.1),
        TestResultLine(record_id="r1", canonical_id=items["Mystery Marker Q"].id, value=3.0),
        TestResultLine(record_id="r1", canonical_id=items["Glucosee Lv"].id, value=98.0),
    ])
    return {name: item.id for name, item in items.items()}


def test_sweep_thresholds():
    """Test sweep thresholds come from settings"""
    sweep = UnmappedSweep(store=None)
    assert sweep.merge_similarity == 80
    assert sweep.canonical_floor == 60
    assert sweep.alias_floor == 70


def test_analyze_proposals(store, unmapped_ids):
    """Test each Unmapped item gets the expected action, deletes first"""
    proposals = analyze_unmapped(store)
    by_name = {p.item_name: p for p in proposals}

    assert [p.action for p in proposals] == [
        SweepAction.DELETE, SweepAction.MERGE, SweepAction.REVIEW, SweepAction.REVIEW,
    ]

    merge = by_name["Creatinin"]
    assert merge.action == SweepAction.MERGE
    assert merge.target_id == "crea"
    assert merge.similarity == 90.0
    assert merge.result_count == 1

    assert by_name["Zzqx Factor"].action == SweepAction.DELETE
    assert by_name["Zzqx Factor"].result_count == 0

    weak = by_name["Glucosee Lv"]
    assert weak.action == SweepAction.REVIEW
    assert weak.target_id == "glu"
    assert weak.similarity == 70.0

    orphan = by_name["Mystery Marker Q"]
    assert orphan.action == SweepAction.REVIEW
    assert orphan.target_id is None


def test_analyze_ignores_real_items(store, unmapped_ids):
    """Test only Unmapped items are analyzed"""
    ids = {p.item_id for p in analyze_unmapped(store)}
    assert ids == set(unmapped_ids.values())


def test_apply_cleanup(store, unmapped_ids):
    """Test deletes and merges are carried out, reviews skipped"""
    proposals = analyze_unmapped(store)
    outcome = apply_cleanup(store, proposals)

    ids = unmapped_ids
    assert outcome.deleted == [ids["Zzqx Factor"]]
    assert outcome.merged == [ids["Creatinin"]]
    assert outcome.lines_moved == 1
    assert len(outcome.skipped) == 2
    assert outcome.errors == []

    assert store.get_canonical_item(ids["Zzqx Factor"]) is None
    assert store.get_canonical_item(ids["Creatinin"]) is None

    values = {l.canonical_id: l.value for l in store.get_lines("r1")}
    assert values["crea"] == 1.1

    aliases = {a.alias: a for a in store.list_aliases()}
    assert aliases["Creatinin"].canonical_id == "crea"
    assert aliases["Creatinin"].source_hint == "merged"


def test_apply_cleanup_dry_run(store, unmapped_ids):
    """Test a dry run reports without changing anything"""
    proposals = analyze_unmapped(store)
    outcome = apply_cleanup(store, proposals, dry_run=True)

    assert outcome.dry_run is True
    assert len(outcome.deleted) == 1
    assert outcome.lines_moved == 1
    assert len(store.list_canonical_items(category="Unmapped")) == 4


def test_delete_refused_when_results_exist(store, unmapped_ids):
    """Test a stale delete proposal cannot remove an item that has results"""
    item_id = unmapped_ids["Zzqx Factor"]
    proposal = SweepProposal(item_id=item_id, item_name="Zzqx Factor", action=SweepAction.DELETE)

    store.insert_lines([TestResultLine(record_id="r1", canonical_id=item_id, value=5.0)])
    outcome = UnmappedSweep(store).apply_cleanup([proposal])

    assert outcome.deleted == []
    assert len(outcome.errors) == 1
    assert store.get_canonical_item(item_id) is not None


def test_real_items_never_deleted(store, unmapped_ids):
    """Test proposals against non-Unmapped items are refused"""
    proposal = SweepProposal(item_id="glu", item_name="GLU", action=SweepAction.DELETE)
    outcome = UnmappedSweep(store).apply_cleanup([proposal])

    assert outcome.deleted == []
    assert "not an Unmapped item" in outcome.errors[0]
    assert store.get_canonical_item("glu") is not None


def test_merge_into_missing_target(store, unmapped_ids):
    """Test a merge proposal whose target vanished"""
    item_id = unmapped_ids["Creatinin"]
    proposal = SweepProposal(
        item_id=item_id, item_name="Creatinin", action=SweepAction.MERGE, target_id="gone",
    )
    outcome = UnmappedSweep(store).apply_cleanup([proposal])

    assert outcome.merged == []
    assert outcome.errors
    assert store.count_lines_for_item(item_id) == 1


def test_proposal_to_dict():
    """Test proposals serialize with the action as a string"""
    data = SweepProposal("u1", "Odd", SweepAction.REVIEW, reason="manual").to_dict()
    assert data["action"] == "review"
    assert data["reason"] == "manual"
