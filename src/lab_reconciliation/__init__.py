# ============================================================================
# src/lab_reconciliation/__init__.py
# ============================================================================
"""
Lab Reconciliation Engine

Turns OCR'd lab report rows into deduplicated, validated test records mapped
onto a canonical vocabulary, and merges records that describe the same
measurement session.
"""

__version__ = "0.1.0"
