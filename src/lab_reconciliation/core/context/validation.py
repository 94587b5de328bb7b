# ============================================================================
# src/lab_reconciliation/core/context/validation.py
# ============================================================================
"""
Validation outcome for a single measurement or composite check
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .enums import IssueType, Severity


@dataclass
class ValidationIssue:
    type: IssueType
    message: str
    severity: Severity = Severity.MEDIUM
    item_code: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationOutcome:
    warnings: List[ValidationIssue] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_warning(self, issue: ValidationIssue):
        self.warnings.append(issue)
        self.suggestions.extend(issue.suggestions)

    def add_error(self, issue: ValidationIssue):
        self.errors.append(issue)
        self.suggestions.extend(issue.suggestions)

    def has_warning(self, issue_type: IssueType) -> bool:
        return any(w.type == issue_type for w in self.warnings)
