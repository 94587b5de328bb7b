# ============================================================================
# src/lab_reconciliation/core/ingestion.py
# ============================================================================
"""
Ingestion Pipeline

Turns OCR output for one measurement session into a persisted test record.

Flow:
1. OCR fan-out (ingest_documents only): one extract() per document, concurrently
2. Garbage filter: drop cells that are values or table labels, not item names
3. Unit cleanup: repair truncated units, map spellings to standard units
4. Value parsing
5. Name resolution (exact → similarity → normalized → assisted);
   unresolved names are filed under an "Unmapped" canonical item
6. Biological validation; items with errors are excluded
7. Deduplication + status
8. Composite checks (WBC differential, A/G ratio)
9. Persistence: atomic when the store supports transactions, otherwise header
   insert + line insert with a compensating header delete on failure

Steps 2-8 run sequentially in document arrival order; deduplication depends on it.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..assisted.base import AssistedMatcher
from ..config import assisted_settings
from ..extractors.base import OcrCollaborator
from ..matching.garbage_filter import check_item_name
from ..matching.resolver import CanonicalItemResolver
from ..matching.vocabulary import CanonicalVocabulary
from ..processors.deduplicator import dedupe_items, reconcile_batch
from ..processors.parsing import (
    correct_truncated_unit,
    describe_value,
    normalize_unit,
    parse_reference_range,
    parse_value,
)
from ..utils.exceptions import ExtractionError, PersistenceError, ValidationError
from ..utils.logging import LogContext, log_performance
from ..validators.plausibility import PlausibilityValidator, normalize_item_code
from .context import (
    AliasEntry,
    IngestionResult,
    MappingSuggestion,
    MatchMethod,
    Numeric,
    ParsedValue,
    RawMeasurement,
    ResolvedItem,
    SourceDocument,
    Special,
    TestRecordHeader,
    TestResultLine,
    ValueKind,
)
from .store_base import RecordStore


logger = logging.getLogger(__name__)


def _validation_input(raw: RawMeasurement, parsed: ParsedValue):
    """
    Value handed to the validator.

    Plain and flagged readings are range-checked as numbers; everything else
    (comparators, qualitative, blank, unparsed) gets the text checks only.
    """
    if isinstance(parsed, Numeric):
        return parsed.value
    if isinstance(parsed, Special) and parsed.kind == ValueKind.FLAGGED:
        return parsed.numeric
    if raw.value is None:
        return None
    return str(raw.value)


class IngestionPipeline:
    """
    Reconcile and persist one submission.

    Args:
        store: Record store (also the source of the canonical vocabulary)
        assisted_matcher: Optional assisted matcher for names local matching misses
        validator: Plausibility validator (default uses the built-in range table)
        config: Optional overrides:
            use_assisted_matching, learn_aliases, resolver (dict passed to the resolver)
    """

    def __init__(
        self,
        store: RecordStore,
        assisted_matcher: Optional[AssistedMatcher] = None,
        validator: Optional[PlausibilityValidator] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        self.store = store
        self.assisted_matcher = assisted_matcher
        self.validator = validator or PlausibilityValidator()
        self.config = config or {}

        self.use_assisted = self.config.get(
            'use_assisted_matching', assisted_settings.ASSISTED_MATCHING_ENABLED
        )
        self.learn_aliases = self.config.get('learn_aliases', assisted_settings.LEARN_ASSISTED_ALIASES)
        self._resolver: Optional[CanonicalItemResolver] = None

    def build_resolver(self) -> CanonicalItemResolver:
        """
        Resolver over a vocabulary snapshot taken from the store.

        The snapshot is taken once per pipeline; aliases learned by later
        batches are added to it in place of a reload.
        """
        if self._resolver is None:
            vocabulary = CanonicalVocabulary.from_store(self.store)
            matcher = self.assisted_matcher if self.use_assisted else None
            self._resolver = CanonicalItemResolver(vocabulary, matcher, self.config.get('resolver'))
        return self._resolver

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    async def ingest_documents(
        self,
        documents: List[Any],
        ocr: OcrCollaborator,
        subject_id: Optional[str] = None
    ) -> IngestionResult:
        """
        Run OCR on every document concurrently, then ingest the results.

        A failed document is reported in the warnings; the rest still go in.

        Raises:
            ExtractionError: If no document could be extracted
        """
        extracted = await asyncio.gather(
            *(ocr.extract(document) for document in documents),
            return_exceptions=True
        )

        sources: List[SourceDocument] = []
        ocr_warnings: List[str] = []
        for document, outcome in zip(documents, extracted):
            if isinstance(outcome, BaseException):
                logger.error(f"OCR failed for {document}: {outcome}")
                ocr_warnings.append(f"OCR failed for {document}: {outcome}")
            else:
                sources.append(outcome)

        if not sources:
            raise ExtractionError(f"OCR failed for all {len(documents)} documents")

        result = await self.ingest_batch(sources, subject_id=subject_id)
        result.warnings = ocr_warnings + result.warnings
        result.stats['ocr_failures'] = len(ocr_warnings)
        return result

    @log_performance(logger, "ingest_batch")
    async def ingest_batch(
        self,
        documents: List[SourceDocument],
        subject_id: Optional[str] = None,
        test_date: Optional[date] = None,
        hospital_name: Optional[str] = None
    ) -> IngestionResult:
        """
        Reconcile raw items from several documents into one persisted record.

        Args:
            documents: OCR results in arrival order
            subject_id: Owner of the record
            test_date / hospital_name: Override document metadata

        Returns:
            IngestionResult with header, lines, warnings and counts

        Raises:
            ValidationError: If nothing in the batch survives validation
            PersistenceError: If the record could not be saved
        """
        warnings: List[str] = []
        stats = {
            'total': 0, 'garbage': 0, 'mapped': 0, 'unmapped': 0,
            'excluded': 0, 'deduplicated': 0, 'without_value': 0, 'lines': 0,
        }

        measurements = self._collect(documents, warnings, stats)

        resolver = self.build_resolver()
        suggestions = await resolver.resolve_many(measurements)

        with LogContext(logger, batch_size=len(measurements)):
            items, item_names = self._build_items(measurements, suggestions, resolver.vocabulary, warnings, stats)

            kept = dedupe_items(items)
            stats['deduplicated'] = len(items) - len(kept)
            for item in kept:
                if item.numeric is None:
                    warnings.append(
                        f"{item.raw.name} ({item.raw.source_document}): "
                        f"no numeric value in {describe_value(item.parsed)}, not saved"
                    )
            lines = reconcile_batch(kept)
            stats['without_value'] = len(kept) - len(lines)

            lines = self._check_composites(lines, item_names, warnings, stats)

        if not lines:
            raise ValidationError("No valid measurements in batch")

        header = TestRecordHeader(
            id=uuid.uuid4().hex,
            test_date=test_date or next((d.test_date for d in documents if d.test_date), None),
            hospital_name=hospital_name or next((d.hospital_name for d in documents if d.hospital_name), None),
            subject_id=subject_id,
        )
        for line in lines:
            line.record_id = header.id

        self._persist(header, lines)
        self._learn_aliases(resolver, suggestions)

        stats['lines'] = len(lines)
        logger.info(
            f"Ingested record {header.id}: {stats['mapped']} mapped, {stats['unmapped']} unmapped, "
            f"{stats['deduplicated']} duplicates, {stats['excluded']} excluded"
        )
        return IngestionResult(header=header, lines=lines, warnings=warnings, stats=stats)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _collect(
        self,
        documents: List[SourceDocument],
        warnings: List[str],
        stats: Dict[str, int]
    ) -> List[RawMeasurement]:
        measurements = []
        for document in documents:
            for raw in document.items:
                stats['total'] += 1
                if not raw.source_document:
                    raw = replace(raw, source_document=document.label)

                check = check_item_name(raw.name)
                if check.is_garbage:
                    stats['garbage'] += 1
                    logger.debug(f"Dropping '{raw.name}' from {raw.source_document}: {check.reason}")
                    continue
                if check.has_truncated_bracket:
                    warnings.append(f"{raw.name} ({raw.source_document}): name looks truncated")

                measurements.append(raw)
        return measurements

    def _build_items(
        self,
        measurements: List[RawMeasurement],
        suggestions: Dict[str, Optional[MappingSuggestion]],
        vocabulary: CanonicalVocabulary,
        warnings: List[str],
        stats: Dict[str, int]
    ) -> Tuple[List[ResolvedItem], Dict[str, str]]:
        items: List[ResolvedItem] = []
        item_names: Dict[str, str] = {}

        for raw in measurements:
            suggestion = suggestions.get(raw.name)
            if suggestion is not None:
                canonical = vocabulary.get(suggestion.canonical_id)
                canonical_id = canonical.id
                name_hint = canonical.name
                unit_default = canonical.unit_default
                confidence = suggestion.confidence
                stats['mapped'] += 1
            else:
                unmapped = self.store.ensure_unmapped_item(raw.name)
                canonical_id = unmapped.id
                name_hint = raw.name
                unit_default = None
                confidence = None
                stats['unmapped'] += 1

            item_names[canonical_id] = name_hint

            parsed = parse_value(raw.value)
            unit = normalize_unit(correct_truncated_unit(raw.unit)) or unit_default

            ref_min, ref_max = raw.ref_min, raw.ref_max
            if ref_min is None and ref_max is None and raw.ref_text:
                ref_min, ref_max = parse_reference_range(raw.ref_text).as_tuple()

            outcome = self.validator.validate(name_hint, _validation_input(raw, parsed), unit)
            if not outcome.is_valid:
                stats['excluded'] += 1
                for error in outcome.errors:
                    warnings.append(f"{raw.name} ({raw.source_document}): excluded, {error.message}")
                continue

            item_warnings = [w.message for w in outcome.warnings]
            warnings.extend(f"{raw.name} ({raw.source_document}): {w}" for w in item_warnings)

            items.append(ResolvedItem(
                canonical_id=canonical_id,
                raw=raw,
                parsed=parsed,
                unit=unit or None,
                ref_min=ref_min,
                ref_max=ref_max,
                mapping_confidence=confidence,
                warnings=item_warnings,
            ))

        return items, item_names

    def _check_composites(
        self,
        lines: List[TestResultLine],
        item_names: Dict[str, str],
        warnings: List[str],
        stats: Dict[str, int]
    ) -> List[TestResultLine]:
        values = {item_names[line.canonical_id]: line.value for line in lines}
        outcomes = self.validator.validate_composites(values)

        excluded_codes = set()
        for check, outcome in outcomes.items():
            warnings.extend(f"{check}: {w.message}" for w in outcome.warnings)
            for error in outcome.errors:
                warnings.append(f"{check}: excluded, {error.message}")
                excluded_codes.add(error.item_code)

        if not excluded_codes:
            return lines

        kept = [
            line for line in lines
            if normalize_item_code(item_names[line.canonical_id]) not in excluded_codes
        ]
        stats['excluded'] += len(lines) - len(kept)
        return kept

    def _persist(self, header: TestRecordHeader, lines: List[TestResultLine]):
        if self.store.supports_transactions:
            try:
                with self.store.transaction():
                    self.store.create_header(header)
                    self.store.insert_lines(lines)
            except Exception as e:
                logger.error(f"Saving record {header.id} failed, transaction rolled back: {e}")
                raise PersistenceError(f"Failed to save batch: {e}") from e
            return

        try:
            self.store.create_header(header)
        except Exception as e:
            raise PersistenceError(f"Failed to create record header: {e}") from e

        try:
            self.store.insert_lines(lines)
        except Exception as e:
            logger.error(f"Line insert failed for record {header.id}, deleting header: {e}")
            try:
                self.store.delete_header(header.id)
            except Exception as cleanup_error:
                logger.error(f"Compensating delete of record {header.id} failed: {cleanup_error}")
            raise PersistenceError(f"Failed to save result lines: {e}") from e

    def _learn_aliases(
        self,
        resolver: CanonicalItemResolver,
        suggestions: Dict[str, Optional[MappingSuggestion]]
    ):
        if not self.learn_aliases:
            return

        learned = []
        for raw_name, suggestion in suggestions.items():
            if suggestion is None or suggestion.method != MatchMethod.ASSISTED:
                continue
            alias = AliasEntry(
                alias=raw_name.strip(),
                canonical_id=suggestion.canonical_id,
                source_hint=suggestion.source_hint or "assisted",
            )
            try:
                self.store.upsert_alias(alias)
                learned.append(alias)
                logger.info(f"Learned alias '{raw_name}' → {suggestion.canonical_id}")
            except PersistenceError as e:
                logger.warning(f"Could not save alias '{raw_name}': {e}")

        if learned:
            resolver.update_vocabulary(resolver.vocabulary.with_aliases(learned))
