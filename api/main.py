# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for the Lab Reconciliation Engine

Provides REST API for batch ingestion, name resolution, record merging and
curation of unmapped items.
"""

import sys
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lab_reconciliation.assisted.base import AssistedMatcher
from lab_reconciliation.assisted.client import create_matcher
from lab_reconciliation.config import assisted_settings, base_settings, logging_settings
from lab_reconciliation.core.context import RawMeasurement, SourceDocument
from lab_reconciliation.core.ingestion import IngestionPipeline
from lab_reconciliation.core.reconciler import RecordReconciler
from lab_reconciliation.core.record_store import SQLiteRecordStore
from lab_reconciliation.core.store_base import RecordStore
from lab_reconciliation.curation import UnmappedSweep
from lab_reconciliation.utils import (
    MergeError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
    setup_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        level=logging_settings.LOG_LEVEL,
        log_file=base_settings.LOG_FILE if logging_settings.LOG_TO_FILE else None,
        format_json=logging_settings.LOG_JSON,
    )
    base_settings.create_directories()
    logger.info(f"Record store: {base_settings.RECORD_DB_PATH}")
    yield
    if get_assisted_matcher.cache_info().currsize:
        matcher = get_assisted_matcher()
        if matcher is not None:
            await matcher.close()


app = FastAPI(
    title="Lab Reconciliation Engine API",
    description="API for reconciling OCR'd lab results into canonical test records",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    return SQLiteRecordStore(base_settings.RECORD_DB_PATH)


@lru_cache(maxsize=1)
def get_assisted_matcher() -> Optional[AssistedMatcher]:
    if not assisted_settings.ASSISTED_MATCHING_ENABLED:
        return None
    return create_matcher()


# ============================================================================
# Models
# ============================================================================

class MeasurementIn(BaseModel):
    name: str
    value: Optional[Union[float, str]] = None
    unit: Optional[str] = None
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    ref_text: Optional[str] = None


class DocumentIn(BaseModel):
    label: str
    items: List[MeasurementIn] = Field(default_factory=list)
    test_date: Optional[date] = None
    hospital_name: Optional[str] = None


class BatchRequest(BaseModel):
    documents: List[DocumentIn]
    subject_id: Optional[str] = None
    test_date: Optional[date] = None
    hospital_name: Optional[str] = None


class ResolveRequest(BaseModel):
    names: List[str]


class MergeRequest(BaseModel):
    source_id: str
    target_id: str
    target_date: Optional[date] = None
    target_hospital: Optional[str] = None
    resolutions: Dict[str, str] = Field(default_factory=dict)  # canonical_id -> "source" | "target"


class CleanupRequest(BaseModel):
    item_ids: Optional[List[str]] = None  # None applies every delete/merge proposal
    dry_run: bool = False


def _to_source_document(document: DocumentIn) -> SourceDocument:
    return SourceDocument(
        label=document.label,
        items=[
            RawMeasurement(
                name=item.name,
                value=item.value,
                unit=item.unit,
                ref_min=item.ref_min,
                ref_max=item.ref_max,
                ref_text=item.ref_text,
                source_document=document.label,
            )
            for item in document.items
        ],
        test_date=document.test_date,
        hospital_name=document.hospital_name,
    )


def _merge_error_response(e: MergeError) -> HTTPException:
    status_code = 409 if (e.applied_steps or e.rolled_back) else 400
    return HTTPException(
        status_code=status_code,
        detail={
            "error": "merge_failed",
            "message": str(e),
            "applied_steps": e.applied_steps,
            "rolled_back": e.rolled_back,
        }
    )


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/health")
async def health(matcher: Optional[AssistedMatcher] = Depends(get_assisted_matcher)):
    """Health check for monitoring. Includes the assisted matcher when enabled."""
    status = {"status": "healthy"}
    if matcher is not None:
        status["assisted_matcher"] = await matcher.health_check()
    return status


@app.post("/api/batches")
async def ingest_batch(
    request: BatchRequest,
    store: RecordStore = Depends(get_store),
    matcher: Optional[AssistedMatcher] = Depends(get_assisted_matcher),
):
    """
    Reconcile OCR output from several documents into one test record.

    Returns the saved header, its result lines, warnings and counts.
    """
    if not request.documents:
        raise HTTPException(status_code=400, detail="At least one document is required")

    pipeline = IngestionPipeline(store, assisted_matcher=matcher)
    try:
        result = await pipeline.ingest_batch(
            [_to_source_document(d) for d in request.documents],
            subject_id=request.subject_id,
            test_date=request.test_date,
            hospital_name=request.hospital_name,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Batch ingestion failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save batch: {str(e)}")

    return {
        "record": asdict(result.header),
        "lines": [asdict(line) for line in result.lines],
        "warnings": result.warnings,
        "stats": result.stats,
    }


@app.post("/api/mappings/resolve")
async def resolve_names(
    request: ResolveRequest,
    store: RecordStore = Depends(get_store),
    matcher: Optional[AssistedMatcher] = Depends(get_assisted_matcher),
):
    """
    Resolve raw item names without ingesting anything.

    Unresolved names map to null.
    """
    resolver = IngestionPipeline(store, assisted_matcher=matcher).build_resolver()
    suggestions = await resolver.resolve_many(request.names)

    return {
        "mappings": {
            name: asdict(suggestion) if suggestion else None
            for name, suggestion in suggestions.items()
        },
        "stats": resolver.get_statistics(),
    }


@app.get("/api/records/merge")
async def plan_merge(
    source_id: str,
    target_id: str,
    store: RecordStore = Depends(get_store),
):
    """Preview a merge: header and item conflicts between two records."""
    reconciler = RecordReconciler(store)
    try:
        plan = reconciler.plan_merge(source_id, target_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MergeError as e:
        raise _merge_error_response(e)

    return {
        "source": asdict(plan.source),
        "target": asdict(plan.target),
        "date_conflict": plan.date_conflict,
        "hospital_conflict": plan.hospital_conflict,
        "item_conflicts": [asdict(c) for c in plan.item_conflicts],
        "source_only": plan.source_only,
        "has_conflicts": plan.has_conflicts,
    }


@app.post("/api/records/merge")
async def execute_merge(
    request: MergeRequest,
    store: RecordStore = Depends(get_store),
):
    """Merge source into target using the caller's resolutions."""
    reconciler = RecordReconciler(store)
    try:
        result = reconciler.execute_merge(
            request.source_id,
            request.target_id,
            request.target_date,
            request.target_hospital,
            request.resolutions,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MergeError as e:
        raise _merge_error_response(e)

    return asdict(result)


@app.get("/api/admin/unmapped")
async def list_unmapped(store: RecordStore = Depends(get_store)):
    """Cleanup proposals for every Unmapped item."""
    proposals = UnmappedSweep(store).analyze()
    return {
        "total": len(proposals),
        "proposals": [p.to_dict() for p in proposals],
    }


@app.post("/api/admin/unmapped/cleanup")
async def cleanup_unmapped(
    request: CleanupRequest,
    store: RecordStore = Depends(get_store),
):
    """
    Apply delete/merge proposals.

    Proposals are recomputed server-side; item_ids narrows which are applied.
    """
    sweep = UnmappedSweep(store)
    proposals = sweep.analyze()
    if request.item_ids is not None:
        wanted = set(request.item_ids)
        proposals = [p for p in proposals if p.item_id in wanted]

    outcome = sweep.apply_cleanup(proposals, dry_run=request.dry_run)
    return outcome.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
