# ============================================================================
# src/lab_reconciliation/core/context/measurement.py
# ============================================================================
"""
Measurement values as they move through one ingestion run
- RawMeasurement / SourceDocument: what the OCR collaborator hands us
- Numeric / Special / Unparsed: parsed value variants
- ResolvedItem: a parsed measurement tied to a canonical item
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

from .enums import ValueKind


@dataclass(frozen=True)
class RawMeasurement:
    name: str
    value: Union[str, float, int, None]
    unit: Optional[str] = None
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    ref_text: Optional[str] = None
    source_document: str = ""


@dataclass
class SourceDocument:
    """One OCR result: document metadata plus its extracted lines."""
    label: str
    items: List[RawMeasurement] = field(default_factory=list)
    test_date: Optional[date] = None
    hospital_name: Optional[str] = None


@dataclass(frozen=True)
class Numeric:
    value: float
    raw: str = ""

    @property
    def numeric(self) -> Optional[float]:
        return self.value

    @property
    def is_special(self) -> bool:
        return False


@dataclass(frozen=True)
class Special:
    """Marker value. numeric is set for comparator and flagged forms only."""
    kind: ValueKind
    numeric: Optional[float] = None
    raw: str = ""

    @property
    def is_special(self) -> bool:
        return True


@dataclass(frozen=True)
class Unparsed:
    raw: str

    @property
    def numeric(self) -> Optional[float]:
        return None

    @property
    def is_special(self) -> bool:
        return True


ParsedValue = Union[Numeric, Special, Unparsed]


@dataclass
class ResolvedItem:
    """A measurement after parsing, resolution and validation."""
    canonical_id: str
    raw: RawMeasurement
    parsed: ParsedValue
    unit: Optional[str] = None
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    mapping_confidence: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def numeric(self) -> Optional[float]:
        return self.parsed.numeric
