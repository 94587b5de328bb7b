# src/lab_reconciliation/curation/__init__.py

from .unmapped_sweep import (
    SweepAction,
    SweepProposal,
    CleanupOutcome,
    UnmappedSweep,
    analyze_unmapped,
    apply_cleanup,
)

__all__ = [
    "SweepAction",
    "SweepProposal",
    "CleanupOutcome",
    "UnmappedSweep",
    "analyze_unmapped",
    "apply_cleanup",
]
