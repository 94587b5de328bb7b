# ============================================================================
# src/lab_reconciliation/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the lab reconciliation engine.
"""

from typing import List, Optional


class ReconciliationEngineError(Exception):
    """Base exception for all reconciliation engine errors."""
    pass


class ValidationError(ReconciliationEngineError):
    """Measurement failed validation and must be excluded."""
    def __init__(self, message: str, item_name: Optional[str] = None):
        super().__init__(message)
        self.item_name = item_name


class ConfigurationError(ReconciliationEngineError):
    """Invalid configuration."""
    pass


class PersistenceError(ReconciliationEngineError):
    """Error reading from or writing to the record store."""
    pass


class RecordNotFoundError(PersistenceError):
    """Requested test record header does not exist."""
    def __init__(self, record_id: str):
        super().__init__(f"Test record not found: {record_id}")
        self.record_id = record_id


class MergeError(ReconciliationEngineError):
    """
    Merge aborted partway through.

    applied_steps lists the mutations that were already carried out, so the
    caller can inspect both records before retrying.
    """
    def __init__(self, message: str, applied_steps: Optional[List[str]] = None, rolled_back: bool = False):
        super().__init__(message)
        self.applied_steps = applied_steps or []
        self.rolled_back = rolled_back


class AssistedMatchingError(ReconciliationEngineError):
    """Assisted-matching backend failed or returned garbage."""
    pass


class ExtractionError(ReconciliationEngineError):
    """No document in a submission could be extracted."""
    pass
