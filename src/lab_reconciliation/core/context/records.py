# ============================================================================
# src/lab_reconciliation/core/context/records.py
# ============================================================================
"""
Vocabulary and persisted record types
- CanonicalItem / AliasEntry: curated vocabulary
- MappingSuggestion: resolver output, never persisted directly
- TestRecordHeader / TestResultLine: one measurement session and its lines
- MergeConflict / MergePlan / MergeResult: record reconciliation
- IngestionResult: what ingest_batch reports back
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from .enums import MatchMethod, ResultStatus


@dataclass(frozen=True)
class CanonicalItem:
    id: str
    name: str
    display_name: Optional[str] = None
    unit_default: Optional[str] = None
    category: Optional[str] = None
    organ_tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AliasEntry:
    alias: str
    canonical_id: str
    source_hint: Optional[str] = None


@dataclass
class MappingSuggestion:
    canonical_id: str
    confidence: float  # 0-100
    reasoning: str = ""
    method: Optional[MatchMethod] = None
    matched_against: Optional[str] = None
    source_hint: Optional[str] = None


@dataclass
class TestRecordHeader:
    id: str
    test_date: Optional[date] = None
    hospital_name: Optional[str] = None
    subject_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    # Not a test class
    __test__ = False


@dataclass
class TestResultLine:
    record_id: Optional[str]
    canonical_id: str
    value: float
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    status: ResultStatus = ResultStatus.UNKNOWN
    unit: Optional[str] = None

    # Provenance
    raw_name: Optional[str] = None
    raw_value: Optional[str] = None
    ref_text: Optional[str] = None
    source_document: Optional[str] = None
    mapping_confidence: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    __test__ = False


@dataclass
class MergeConflict:
    canonical_id: str
    source_value: float
    target_value: float
    source_unit: Optional[str] = None
    target_unit: Optional[str] = None
    unit_mismatch: bool = False  # both units given and not the same unit

@dataclass
class MergePlan:
    source: TestRecordHeader
    target: TestRecordHeader
    date_conflict: bool = False
    hospital_conflict: bool = False
    item_conflicts: List[MergeConflict] = field(default_factory=list)
    source_only: List[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return self.date_conflict or self.hospital_conflict or bool(self.item_conflicts)


@dataclass
class MergeResult:
    target_id: str
    moved: List[str] = field(default_factory=list)
    replaced: List[str] = field(default_factory=list)
    kept_target: List[str] = field(default_factory=list)


@dataclass
class IngestionResult:
    header: TestRecordHeader
    lines: List[TestResultLine] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
