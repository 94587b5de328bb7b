# src/lab_reconciliation/core/context/__init__.py

from .enums import (
    ValueKind,
    ResultStatus,
    MatchMethod,
    Severity,
    IssueType,
    MergeResolution,
)
from .measurement import (
    RawMeasurement,
    SourceDocument,
    Numeric,
    Special,
    Unparsed,
    ParsedValue,
    ResolvedItem,
)
from .records import (
    CanonicalItem,
    AliasEntry,
    MappingSuggestion,
    TestRecordHeader,
    TestResultLine,
    MergeConflict,
    MergePlan,
    MergeResult,
    IngestionResult,
)
from .validation import ValidationIssue, ValidationOutcome

__all__ = [
    "ValueKind",
    "ResultStatus",
    "MatchMethod",
    "Severity",
    "IssueType",
    "MergeResolution",
    "RawMeasurement",
    "SourceDocument",
    "Numeric",
    "Special",
    "Unparsed",
    "ParsedValue",
    "ResolvedItem",
    "CanonicalItem",
    "AliasEntry",
    "MappingSuggestion",
    "TestRecordHeader",
    "TestResultLine",
    "MergeConflict",
    "MergePlan",
    "MergeResult",
    "IngestionResult",
    "ValidationIssue",
    "ValidationOutcome",
]
