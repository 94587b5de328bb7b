# ============================================================================
# src/lab_reconciliation/matching/resolver.py
# ============================================================================
"""
Canonical Item Resolver

Maps a raw item name from a lab report to a canonical item id.

Resolution order (first confident hit wins):
1. Exact alias / canonical name, case-insensitive      → confidence 100
2. Similarity scoring against canonical names + aliases → the score
3. Normalized name (punctuation/whitespace stripped)    → confidence 95
4. Assisted matcher, behind the trust gate              → its confidence

A name nothing resolves comes back as None; the ingestion pipeline files it
under the "Unmapped" category.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from ..assisted.base import (
    AssistedMatcher,
    AssistedMatchRequest,
    accept_assisted_suggestion,
)
from ..config import threshold_settings
from ..core.context import MappingSuggestion, MatchMethod, RawMeasurement
from ..processors.parsing import describe_value, parse_value
from .similarity import similarity
from .vocabulary import CanonicalVocabulary


logger = logging.getLogger(__name__)


class CanonicalItemResolver:
    """
    Resolve raw item names against an injected canonical vocabulary.

    Args:
        vocabulary: Read-only vocabulary snapshot
        assisted_matcher: Optional external matcher used as last resort
        config: Optional threshold overrides:
            canonical_floor, alias_floor, normalized_confidence,
            assisted_min_confidence
    """

    def __init__(
        self,
        vocabulary: CanonicalVocabulary,
        assisted_matcher: Optional[AssistedMatcher] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        self.vocabulary = vocabulary
        self.assisted_matcher = assisted_matcher
        self.config = config or {}

        self.canonical_floor = self.config.get('canonical_floor', threshold_settings.CANONICAL_SIMILARITY_FLOOR)
        self.alias_floor = self.config.get('alias_floor', threshold_settings.ALIAS_SIMILARITY_FLOOR)
        self.normalized_confidence = self.config.get(
            'normalized_confidence', threshold_settings.NORMALIZED_MATCH_CONFIDENCE
        )
        self.assisted_min_confidence = self.config.get(
            'assisted_min_confidence', threshold_settings.ASSISTED_MIN_CONFIDENCE
        )

        self.stats = {method.value: 0 for method in MatchMethod}
        self.stats['unresolved'] = 0
        self.stats['assisted_failures'] = 0

    # ------------------------------------------------------------------
    # Local matching
    # ------------------------------------------------------------------
    def resolve_local(self, raw_name: str) -> Optional[MappingSuggestion]:
        """Steps 1-3: exact, similarity, normalized. No I/O."""
        name = (raw_name or '').strip()
        if not name:
            return None

        canonical_id = self.vocabulary.lookup_exact(name)
        if canonical_id:
            return MappingSuggestion(
                canonical_id=canonical_id,
                confidence=100.0,
                reasoning="exact alias/name match",
                method=MatchMethod.EXACT,
                matched_against=name,
            )

        best = self._best_similarity(name)
        if best:
            return best

        canonical_id = self.vocabulary.lookup_normalized(name)
        if canonical_id:
            return MappingSuggestion(
                canonical_id=canonical_id,
                confidence=float(self.normalized_confidence),
                reasoning="normalized name match",
                method=MatchMethod.NORMALIZED,
                matched_against=self.vocabulary.get(canonical_id).name,
            )

        return None

    def _best_similarity(self, name: str) -> Optional[MappingSuggestion]:
        best: Optional[MappingSuggestion] = None

        scored = [
            (candidate, canonical_id, self.canonical_floor, "canonical name")
            for candidate, canonical_id in self.vocabulary.canonical_candidates()
        ] + [
            (candidate, canonical_id, self.alias_floor, "alias")
            for candidate, canonical_id in self.vocabulary.alias_candidates()
        ]

        for candidate, canonical_id, floor, kind in scored:
            score = similarity(name, candidate)
            if score < floor:
                continue
            # Ties keep the earlier candidate (canonical names before aliases)
            if best is None or score > best.confidence:
                best = MappingSuggestion(
                    canonical_id=canonical_id,
                    confidence=score,
                    reasoning=f"similar to {kind} '{candidate}' ({score:g})",
                    method=MatchMethod.SIMILARITY,
                    matched_against=candidate,
                )

        return best

    # ------------------------------------------------------------------
    # Full resolution
    # ------------------------------------------------------------------
    async def resolve(
        self,
        raw_name: str,
        measurement: Optional[RawMeasurement] = None
    ) -> Optional[MappingSuggestion]:
        """
        Resolve one raw name, consulting the assisted matcher if needed.

        Args:
            raw_name: Name as printed on the report
            measurement: Optional source line; its value/unit/range are passed
                to the assisted matcher as context

        Returns:
            MappingSuggestion, or None if unresolved
        """
        suggestion = self.resolve_local(raw_name)
        if suggestion is None:
            suggestion = await self._resolve_assisted(raw_name, measurement)

        if suggestion is None:
            self.stats['unresolved'] += 1
            logger.info(f"Could not resolve '{raw_name}'")
        else:
            self.stats[suggestion.method.value] += 1
            logger.debug(
                f"Resolved '{raw_name}' → {suggestion.canonical_id} "
                f"({suggestion.method.value}, {suggestion.confidence:g})"
            )
        return suggestion

    async def _resolve_assisted(
        self,
        raw_name: str,
        measurement: Optional[RawMeasurement]
    ) -> Optional[MappingSuggestion]:
        if self.assisted_matcher is None or not (raw_name or '').strip():
            return None

        request = AssistedMatchRequest(
            raw_name=raw_name.strip(),
            candidates=list(self.vocabulary.items.values()),
        )
        if measurement is not None:
            if measurement.value is not None:
                request.value = describe_value(parse_value(measurement.value))
            request.unit = measurement.unit
            request.ref_min = measurement.ref_min
            request.ref_max = measurement.ref_max
            request.ref_text = measurement.ref_text

        try:
            response = await self.assisted_matcher.suggest(request)
        except Exception as e:
            # One failed item never aborts the batch
            self.stats['assisted_failures'] += 1
            logger.warning(f"Assisted matching failed for '{raw_name}': {e}")
            return None

        return accept_assisted_suggestion(response, self.vocabulary, self.assisted_min_confidence)

    async def resolve_many(
        self,
        names: Iterable[Union[str, RawMeasurement]]
    ) -> Dict[str, Optional[MappingSuggestion]]:
        """
        Resolve a batch of names.

        Each distinct raw name is resolved once, so the assisted matcher is
        called at most once per name. Calls are made sequentially.

        Args:
            names: Raw names, or RawMeasurements (first occurrence supplies context)

        Returns:
            {raw name: suggestion or None}
        """
        first_seen: Dict[str, Optional[RawMeasurement]] = {}
        for entry in names:
            if isinstance(entry, RawMeasurement):
                first_seen.setdefault(entry.name, entry)
            else:
                first_seen.setdefault(entry, None)

        results: Dict[str, Optional[MappingSuggestion]] = {}
        for name, measurement in first_seen.items():
            results[name] = await self.resolve(name, measurement)

        resolved = sum(1 for s in results.values() if s is not None)
        logger.info(f"Resolved {resolved}/{len(results)} distinct names")
        return results

    def update_vocabulary(self, vocabulary: CanonicalVocabulary):
        self.vocabulary = vocabulary

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self.stats)
