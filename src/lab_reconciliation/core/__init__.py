# ============================================================================
# src/lab_reconciliation/core/__init__.py
# ============================================================================
"""
Core types and configuration for the lab reconciliation engine.

The pipeline, store and reconciler live in their own modules
(core.ingestion, core.record_store, core.reconciler) and are imported
from there.
"""

from .context import (
    RawMeasurement,
    SourceDocument,
    ParsedValue,
    ResolvedItem,
    CanonicalItem,
    AliasEntry,
    MappingSuggestion,
    TestRecordHeader,
    TestResultLine,
    MergePlan,
    MergeResult,
    IngestionResult,
    ValidationOutcome,
)
from .config import Config, get_config, reload_config

__all__ = [
    # Context
    'RawMeasurement',
    'SourceDocument',
    'ParsedValue',
    'ResolvedItem',
    'CanonicalItem',
    'AliasEntry',
    'MappingSuggestion',
    'TestRecordHeader',
    'TestResultLine',
    'MergePlan',
    'MergeResult',
    'IngestionResult',
    'ValidationOutcome',

    # Configuration
    'Config',
    'get_config',
    'reload_config',
]
