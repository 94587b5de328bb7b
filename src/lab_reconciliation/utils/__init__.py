# src/lab_reconciliation/utils/__init__.py

from .exceptions import (
    ReconciliationEngineError,
    ValidationError,
    ConfigurationError,
    PersistenceError,
    RecordNotFoundError,
    MergeError,
    AssistedMatchingError,
    ExtractionError,
)
from .logging import setup_logging, LogContext, log_performance

__all__ = [
    "ReconciliationEngineError",
    "ValidationError",
    "ConfigurationError",
    "PersistenceError",
    "RecordNotFoundError",
    "MergeError",
    "AssistedMatchingError",
    "ExtractionError",
    "setup_logging",
    "LogContext",
    "log_performance",
]
