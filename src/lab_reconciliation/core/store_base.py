# ============================================================================
# src/lab_reconciliation/core/store_base.py
# ============================================================================
"""
Record Store Interface

CRUD over test record headers, result lines, canonical items and aliases.
Result lines are unique on (record_id, canonical_id); insert_lines upserts.

Stores that can run several statements atomically set supports_transactions
and implement transaction(). Callers fall back to compensating actions
otherwise.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional

from .context import AliasEntry, CanonicalItem, TestRecordHeader, TestResultLine


class RecordStore(ABC):
    supports_transactions: bool = False

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        """Run the enclosed calls atomically. Base implementation is not atomic."""
        yield self

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------
    @abstractmethod
    def create_header(self, header: TestRecordHeader) -> TestRecordHeader:
        pass

    @abstractmethod
    def get_header(self, record_id: str) -> Optional[TestRecordHeader]:
        pass

    @abstractmethod
    def list_headers(self, subject_id: Optional[str] = None) -> List[TestRecordHeader]:
        pass

    @abstractmethod
    def update_header(
        self,
        record_id: str,
        test_date: Optional[date],
        hospital_name: Optional[str]
    ) -> None:
        pass

    @abstractmethod
    def delete_header(self, record_id: str) -> bool:
        """Delete a header and, by cascade, all of its lines."""
        pass

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------
    @abstractmethod
    def insert_lines(self, lines: List[TestResultLine]) -> None:
        pass

    @abstractmethod
    def get_lines(self, record_id: str) -> List[TestResultLine]:
        pass

    @abstractmethod
    def reassign_line(self, from_record_id: str, canonical_id: str, to_record_id: str) -> None:
        pass

    @abstractmethod
    def delete_line(self, record_id: str, canonical_id: str) -> bool:
        pass

    @abstractmethod
    def count_lines_for_item(self, canonical_id: str) -> int:
        pass

    @abstractmethod
    def move_item_lines(self, from_canonical_id: str, to_canonical_id: str) -> int:
        """
        Re-point every line of one canonical item to another.

        Where a record already has a line for the destination item, that line
        is kept and the moved one is dropped.
        """
        pass

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------
    @abstractmethod
    def add_canonical_item(self, item: CanonicalItem) -> CanonicalItem:
        pass

    @abstractmethod
    def get_canonical_item(self, canonical_id: str) -> Optional[CanonicalItem]:
        pass

    @abstractmethod
    def list_canonical_items(self, category: Optional[str] = None) -> List[CanonicalItem]:
        pass

    @abstractmethod
    def delete_canonical_item(self, canonical_id: str) -> bool:
        pass

    @abstractmethod
    def ensure_unmapped_item(self, raw_name: str) -> CanonicalItem:
        """Return the Unmapped-category item for raw_name, creating it if needed."""
        pass

    @abstractmethod
    def list_aliases(self) -> List[AliasEntry]:
        pass

    @abstractmethod
    def upsert_alias(self, entry: AliasEntry) -> None:
        pass

    @abstractmethod
    def reassign_aliases(self, from_canonical_id: str, to_canonical_id: str) -> int:
        pass
