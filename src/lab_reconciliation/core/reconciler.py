# ============================================================================
# src/lab_reconciliation/core/reconciler.py
# ============================================================================
"""
Record Reconciler

Merges one persisted test record (source) into another (target).

plan_merge() reports what would conflict and never changes anything:
- date_conflict: test dates differ
- hospital_conflict: both records name a hospital and they differ
- item_conflicts: canonical items present in both with different values,
  flagged when the two lines also report different units

execute_merge() applies caller decisions:
- target header gets the caller's date and hospital
- source-only items move to the target
- shared items: "source" replaces the target line, "target" (or no
  resolution) keeps it
- the source record is deleted, taking any lines left behind with it

With a transactional store the whole merge commits or rolls back as one.
Otherwise a failure leaves already-applied steps in place and MergeError
lists them.
"""

import logging
from datetime import date
from typing import Dict, List, Mapping, Optional, Union

from ..processors.parsing import units_equivalent
from ..utils.exceptions import MergeError, RecordNotFoundError
from ..utils.logging import log_performance
from .context import (
    MergeConflict,
    MergePlan,
    MergeResolution,
    MergeResult,
    TestRecordHeader,
    TestResultLine,
)
from .store_base import RecordStore


logger = logging.getLogger(__name__)


class RecordReconciler:

    def __init__(self, store: RecordStore):
        self.store = store

    def _load_header(self, record_id: str) -> TestRecordHeader:
        header = self.store.get_header(record_id)
        if header is None:
            raise RecordNotFoundError(record_id)
        return header

    def _lines_by_item(self, record_id: str) -> Dict[str, TestResultLine]:
        return {line.canonical_id: line for line in self.store.get_lines(record_id)}

    def plan_merge(self, source_id: str, target_id: str) -> MergePlan:
        """
        Compare two records before merging.

        Conflict detection is symmetric: swapping source and target reports
        the same canonical ids.

        Raises:
            RecordNotFoundError: If either record is missing
            MergeError: If source and target are the same record
        """
        if source_id == target_id:
            raise MergeError("Cannot merge a record into itself")

        source = self._load_header(source_id)
        target = self._load_header(target_id)

        source_lines = self._lines_by_item(source_id)
        target_lines = self._lines_by_item(target_id)

        conflicts = []
        source_only = []
        for canonical_id, line in source_lines.items():
            other = target_lines.get(canonical_id)
            if other is None:
                source_only.append(canonical_id)
            elif line.value != other.value:
                conflicts.append(MergeConflict(
                    canonical_id=canonical_id,
                    source_value=line.value,
                    target_value=other.value,
                    source_unit=line.unit,
                    target_unit=other.unit,
                    unit_mismatch=bool(line.unit and other.unit) and not units_equivalent(line.unit, other.unit),
                ))

        plan = MergePlan(
            source=source,
            target=target,
            date_conflict=source.test_date != target.test_date,
            hospital_conflict=bool(
                source.hospital_name and target.hospital_name
                and source.hospital_name != target.hospital_name
            ),
            item_conflicts=conflicts,
            source_only=source_only,
        )
        logger.info(
            f"Merge plan {source_id} → {target_id}: {len(conflicts)} item conflicts, "
            f"{len(source_only)} items to move"
        )
        return plan

    @log_performance(logger, "execute_merge")
    def execute_merge(
        self,
        source_id: str,
        target_id: str,
        target_date: Optional[date],
        target_hospital: Optional[str],
        resolutions: Optional[Mapping[str, Union[MergeResolution, str]]] = None
    ) -> MergeResult:
        """
        Merge source into target.

        Args:
            source_id: Record that will be deleted
            target_id: Record that survives
            target_date / target_hospital: Final header values for the target
            resolutions: {canonical_id: "source" | "target"}; missing ids keep the target

        Raises:
            RecordNotFoundError: If either record is missing
            MergeError: On failure; applied_steps lists what already happened
        """
        if source_id == target_id:
            raise MergeError("Cannot merge a record into itself")

        self._load_header(source_id)
        self._load_header(target_id)

        try:
            decisions = {
                canonical_id: MergeResolution(choice)
                for canonical_id, choice in (resolutions or {}).items()
            }
        except ValueError as e:
            raise MergeError(f"Invalid merge resolution: {e}") from e

        steps: List[str] = []

        if self.store.supports_transactions:
            try:
                with self.store.transaction():
                    return self._apply(source_id, target_id, target_date, target_hospital, decisions, steps)
            except Exception as e:
                raise MergeError(
                    f"Merge of {source_id} into {target_id} failed and was rolled back: {e}",
                    applied_steps=[],
                    rolled_back=True,
                ) from e

        try:
            return self._apply(source_id, target_id, target_date, target_hospital, decisions, steps)
        except Exception as e:
            logger.error(
                f"Merge of {source_id} into {target_id} aborted after {len(steps)} steps; "
                f"both records need inspection"
            )
            raise MergeError(
                f"Merge of {source_id} into {target_id} aborted: {e}",
                applied_steps=list(steps),
            ) from e

    def _apply(
        self,
        source_id: str,
        target_id: str,
        target_date: Optional[date],
        target_hospital: Optional[str],
        decisions: Dict[str, MergeResolution],
        steps: List[str]
    ) -> MergeResult:
        result = MergeResult(target_id=target_id)

        self.store.update_header(target_id, target_date, target_hospital)
        steps.append(f"updated header {target_id}")

        target_items = set(self._lines_by_item(target_id))

        for line in self.store.get_lines(source_id):
            canonical_id = line.canonical_id

            if canonical_id not in target_items:
                self.store.reassign_line(source_id, canonical_id, target_id)
                steps.append(f"moved {canonical_id}")
                result.moved.append(canonical_id)

            elif decisions.get(canonical_id) == MergeResolution.USE_SOURCE:
                self.store.delete_line(target_id, canonical_id)
                steps.append(f"deleted target line {canonical_id}")
                self.store.reassign_line(source_id, canonical_id, target_id)
                steps.append(f"moved {canonical_id}")
                result.replaced.append(canonical_id)

            else:
                result.kept_target.append(canonical_id)

        self.store.delete_header(source_id)
        steps.append(f"deleted record {source_id}")

        logger.info(
            f"Merged {source_id} into {target_id}: {len(result.moved)} moved, "
            f"{len(result.replaced)} replaced, {len(result.kept_target)} kept"
        )
        return result
