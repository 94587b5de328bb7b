# ============================================================================
# src/lab_reconciliation/curation/unmapped_sweep.py
# ============================================================================
"""
Unmapped Item Sweep

Names the resolver could not place are stored as canonical items in the
"Unmapped" category so their lines are not lost. This sweep looks at each of
them again against the current vocabulary and proposes:

- merge:  a real canonical item is similar enough (>= 80) to fold into
- delete: nothing similar and no result lines reference it
- review: anything else, left for a human

apply_cleanup() carries the proposals out. Nothing here runs during batch
ingestion.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import threshold_settings
from ..constants import UNMAPPED_CATEGORY
from ..core.context import AliasEntry, CanonicalItem
from ..core.store_base import RecordStore
from ..matching.resolver import CanonicalItemResolver
from ..matching.vocabulary import CanonicalVocabulary


logger = logging.getLogger(__name__)


class SweepAction(str, Enum):
    DELETE = "delete"
    MERGE = "merge"
    REVIEW = "review"


_ACTION_ORDER = {SweepAction.DELETE: 0, SweepAction.MERGE: 1, SweepAction.REVIEW: 2}


@dataclass
class SweepProposal:
    item_id: str
    item_name: str
    action: SweepAction
    result_count: int = 0
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    similarity: Optional[float] = None
    matched_against: Optional[str] = None
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'item_id': self.item_id,
            'item_name': self.item_name,
            'action': self.action.value,
            'result_count': self.result_count,
            'target_id': self.target_id,
            'target_name': self.target_name,
            'similarity': self.similarity,
            'matched_against': self.matched_against,
            'reason': self.reason,
        }


@dataclass
class CleanupOutcome:
    deleted: List[str] = field(default_factory=list)
    merged: List[str] = field(default_factory=list)
    lines_moved: int = 0
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deleted': list(self.deleted),
            'merged': list(self.merged),
            'lines_moved': self.lines_moved,
            'skipped': list(self.skipped),
            'errors': list(self.errors),
            'dry_run': self.dry_run,
        }


class UnmappedSweep:
    """
    Analyze and clean up Unmapped-category items.

    Args:
        store: Record store holding the vocabulary and result lines
        config: Optional overrides: merge_similarity, canonical_floor, alias_floor
    """

    def __init__(self, store: RecordStore, config: Optional[Dict[str, Any]] = None):
        self.store = store
        self.config = config or {}
        self.merge_similarity = self.config.get('merge_similarity', threshold_settings.SWEEP_MERGE_SIMILARITY)
        self.canonical_floor = self.config.get('canonical_floor', threshold_settings.SWEEP_CANONICAL_FLOOR)
        self.alias_floor = self.config.get('alias_floor', threshold_settings.SWEEP_ALIAS_FLOOR)

    def analyze(self) -> List[SweepProposal]:
        """Propose an action for every Unmapped item. Read-only."""
        vocabulary = CanonicalVocabulary.from_store(self.store)
        resolver = CanonicalItemResolver(
            vocabulary,
            config={'canonical_floor': self.canonical_floor, 'alias_floor': self.alias_floor},
        )

        proposals = [
            self._propose(item, resolver, vocabulary)
            for item in self.store.list_canonical_items(category=UNMAPPED_CATEGORY)
        ]
        proposals.sort(key=lambda p: (_ACTION_ORDER[p.action], p.item_name.lower()))

        counts = {action.value: 0 for action in SweepAction}
        for proposal in proposals:
            counts[proposal.action.value] += 1
        logger.info(f"Unmapped sweep: {len(proposals)} items analyzed {counts}")
        return proposals

    def _propose(
        self,
        item: CanonicalItem,
        resolver: CanonicalItemResolver,
        vocabulary: CanonicalVocabulary
    ) -> SweepProposal:
        result_count = self.store.count_lines_for_item(item.id)
        suggestion = resolver.resolve_local(item.name)

        proposal = SweepProposal(
            item_id=item.id,
            item_name=item.name,
            action=SweepAction.REVIEW,
            result_count=result_count,
        )

        if suggestion is not None:
            target = vocabulary.get(suggestion.canonical_id)
            proposal.target_id = suggestion.canonical_id
            proposal.target_name = target.name if target else None
            proposal.similarity = suggestion.confidence
            proposal.matched_against = suggestion.matched_against

            if suggestion.confidence >= self.merge_similarity:
                proposal.action = SweepAction.MERGE
                proposal.reason = f"{suggestion.reasoning}; {result_count} results to move"
            else:
                proposal.reason = f"weak candidate: {suggestion.reasoning}"
            return proposal

        if result_count == 0:
            proposal.action = SweepAction.DELETE
            proposal.reason = "no similar item and no results"
        else:
            proposal.reason = f"no similar item but {result_count} results reference it"
        return proposal

    def apply_cleanup(self, proposals: List[SweepProposal], dry_run: bool = False) -> CleanupOutcome:
        """
        Carry out delete and merge proposals. Review proposals are skipped.

        Each proposal is re-checked against the store before acting, so a
        stale proposal cannot delete an item that has gained results.
        """
        outcome = CleanupOutcome(dry_run=dry_run)

        for proposal in proposals:
            if proposal.action == SweepAction.DELETE:
                self._apply_delete(proposal, outcome, dry_run)
            elif proposal.action == SweepAction.MERGE:
                self._apply_merge(proposal, outcome, dry_run)
            else:
                outcome.skipped.append(proposal.item_id)

        logger.info(
            f"Unmapped cleanup{' (dry run)' if dry_run else ''}: "
            f"{len(outcome.deleted)} deleted, {len(outcome.merged)} merged, "
            f"{outcome.lines_moved} lines moved, {len(outcome.errors)} errors"
        )
        return outcome

    def _unmapped_item(self, proposal: SweepProposal, outcome: CleanupOutcome) -> Optional[CanonicalItem]:
        item = self.store.get_canonical_item(proposal.item_id)
        if item is None:
            outcome.errors.append(f"{proposal.item_id}: item no longer exists")
            return None
        if item.category != UNMAPPED_CATEGORY:
            outcome.errors.append(f"{proposal.item_id}: not an Unmapped item")
            return None
        return item

    def _apply_delete(self, proposal: SweepProposal, outcome: CleanupOutcome, dry_run: bool):
        if self._unmapped_item(proposal, outcome) is None:
            return

        count = self.store.count_lines_for_item(proposal.item_id)
        if count:
            outcome.errors.append(f"{proposal.item_id}: {count} results still reference it")
            return

        if not dry_run:
            self.store.delete_canonical_item(proposal.item_id)
        outcome.deleted.append(proposal.item_id)

    def _apply_merge(self, proposal: SweepProposal, outcome: CleanupOutcome, dry_run: bool):
        item = self._unmapped_item(proposal, outcome)
        if item is None:
            return

        if not proposal.target_id or self.store.get_canonical_item(proposal.target_id) is None:
            outcome.errors.append(f"{proposal.item_id}: merge target {proposal.target_id} not found")
            return

        if dry_run:
            outcome.lines_moved += self.store.count_lines_for_item(item.id)
            outcome.merged.append(item.id)
            return

        try:
            with self.store.transaction():
                moved = self.store.move_item_lines(item.id, proposal.target_id)
                self.store.reassign_aliases(item.id, proposal.target_id)
                self.store.upsert_alias(AliasEntry(
                    alias=item.name,
                    canonical_id=proposal.target_id,
                    source_hint="merged",
                ))
                self.store.delete_canonical_item(item.id)
        except Exception as e:
            logger.error(f"Failed to merge {item.id} into {proposal.target_id}: {e}")
            outcome.errors.append(f"{item.id}: {e}")
            return

        outcome.lines_moved += moved
        outcome.merged.append(item.id)
        logger.info(f"Merged unmapped '{item.name}' into {proposal.target_id} ({moved} lines)")


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def analyze_unmapped(store: RecordStore, config: Optional[Dict[str, Any]] = None) -> List[SweepProposal]:
    return UnmappedSweep(store, config).analyze()


def apply_cleanup(
    store: RecordStore,
    proposals: List[SweepProposal],
    dry_run: bool = False
) -> CleanupOutcome:
    return UnmappedSweep(store).apply_cleanup(proposals, dry_run=dry_run)
