"""
FastAPI Endpoints for the Lead Quality Engine
=============================================
Hosting application for lead scoring and duplicate resolution. The cores
are pure; this layer loads leads and groups from the named value store,
calls the cores, and saves the results back.

Base URL: http://localhost:8000

Endpoints:
- GET    /                                  - API info
- GET    /api/health                        - Health check
- POST   /api/leads/score                   - Score a lead (not persisted)
- POST   /api/leads/score/batch             - Score many leads (not persisted)
- POST   /api/leads                         - Create/replace and score a lead
- GET    /api/leads                         - List leads
- GET    /api/leads/{id}                    - Get a lead
- DELETE /api/leads/{id}                    - Delete a lead
- POST   /api/duplicates/scan               - Detect duplicate groups
- GET    /api/duplicates                    - List duplicate groups
- GET    /api/duplicates/summary            - Review statistics
- GET    /api/duplicates/settings           - Detection thresholds
- PUT    /api/duplicates/settings           - Update detection thresholds
- GET    /api/duplicates/{id}               - Get a duplicate group
- POST   /api/duplicates/{id}/merge         - Merge a group
- POST   /api/duplicates/{id}/ignore        - Ignore a group
- POST   /api/duplicates/{id}/reset         - Reset an ignored group
- GET    /api/stats                         - Engine statistics
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from ..config.settings import (
    DEFAULT_DUPLICATE_THRESHOLDS,
    SERVICE_CONFIG,
    STORE_KEYS,
    STORE_PATH,
)
from ..dedupe.resolver import DuplicateResolver
from ..engine import LeadScoringEngine
from ..errors import InvalidStateError, LeadEngineError, NotFoundError, ValidationError
from ..models.schemas import (
    ACTIVE_GROUP_STATUSES,
    DuplicateGroup,
    DuplicateThresholds,
    GroupStatus,
    Lead,
    MergeRequest,
    ReviewRequest,
)
from ..store import NamedValueStore, create_store

logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="Lead Quality Engine API",
    description="""
## Lead Scoring & Duplicate Resolution

### Features:
- **Explainable scoring**: weighted factors, conversion probability, deal value
- **Insights**: next actions, buying signals and risks per lead
- **Duplicate detection**: fuzzy matching over email, name, company and phone
- **Merge review**: merge, ignore or reset duplicate groups with an audit record
    """,
    version=SERVICE_CONFIG["version"],
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - Allow all origins for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Storage & Engine Initialization
# =============================================================================

default_store = create_store(STORE_PATH)
default_engine = LeadScoringEngine()
default_resolver = DuplicateResolver()


def get_store() -> NamedValueStore:
    return default_store


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": SERVICE_CONFIG["name"],
        "version": SERVICE_CONFIG["version"],
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Score": "POST /api/leads/score",
            "Batch Score": "POST /api/leads/score/batch",
            "Save Lead": "POST /api/leads",
            "Scan Duplicates": "POST /api/duplicates/scan",
            "Merge": "POST /api/duplicates/{id}/merge",
            "Health": "GET /api/health",
        },
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": SERVICE_CONFIG["name"],
        "version": SERVICE_CONFIG["version"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "persistent_store": bool(STORE_PATH),
    }


# =============================================================================
# Lead Scoring Endpoints
# =============================================================================

@app.post("/api/leads/score", tags=["Scoring"])
async def score_lead(
    lead: Lead,
    now: Optional[datetime] = Query(None, description="Reference time for lead age"),
):
    """
    Score a lead without saving it

    Returns factors, overall score, conversion probability, estimated deal
    value, insights, buying signals and risk factors.
    """
    return default_engine.score(lead, now)


@app.post("/api/leads/score/batch", tags=["Scoring"])
async def score_batch(
    leads: List[Lead] = Body(..., description="List of leads to score"),
    now: Optional[datetime] = Query(None, description="Reference time for lead age"),
):
    """Score multiple leads at once, best first"""
    return default_engine.score_batch(leads, now)


@app.post("/api/leads", tags=["Leads"])
async def save_lead(
    lead: Lead,
    now: Optional[datetime] = Query(None, description="Reference time for lead age"),
    store: NamedValueStore = Depends(get_store),
):
    """
    Create or replace a lead

    The lead is scored and stored with its AI fields filled in.
    """
    result = default_engine.score(lead, now)
    scored = default_engine.apply_scores(lead, result)

    existing = _load_leads(store)
    leads = [l for l in existing if l.id != scored.id]
    replaced = len(leads) < len(existing)
    leads.append(scored)
    _save_leads(store, leads)

    # The replaced record may no longer match its duplicate group
    if replaced:
        _detach_from_groups(store, scored.id, leads)

    logger.info("Saved lead %s with score %d", scored.id, result.overall_score)
    return {"lead": scored, "scoring": result}


@app.get("/api/leads", tags=["Leads"])
async def list_leads(store: NamedValueStore = Depends(get_store)):
    """List all stored leads"""
    leads = _load_leads(store)
    return {"count": len(leads), "leads": leads}


@app.get("/api/leads/{lead_id}", tags=["Leads"])
async def get_lead(lead_id: str, store: NamedValueStore = Depends(get_store)):
    """Get a lead by ID"""
    for lead in _load_leads(store):
        if lead.id == lead_id:
            return lead
    raise NotFoundError(f"Lead {lead_id} not found", lead_id=lead_id)


@app.delete("/api/leads/{lead_id}", tags=["Leads"])
async def delete_lead(lead_id: str, store: NamedValueStore = Depends(get_store)):
    """Delete a lead"""
    leads = _load_leads(store)
    remaining = [l for l in leads if l.id != lead_id]
    if len(remaining) == len(leads):
        raise NotFoundError(f"Lead {lead_id} not found", lead_id=lead_id)
    _save_leads(store, remaining)
    _detach_from_groups(store, lead_id, remaining)
    return {"status": "deleted", "lead_id": lead_id}


# =============================================================================
# Duplicate Resolution Endpoints
# =============================================================================

@app.post("/api/duplicates/scan", tags=["Duplicates"])
async def scan_duplicates(store: NamedValueStore = Depends(get_store)):
    """
    Scan stored leads for duplicates

    Merged and ignored groups are kept; previous pending/reviewed groups
    are replaced by the new scan.
    """
    leads = _load_leads(store)
    kept = [g for g in _load_groups(store) if g.status not in ACTIVE_GROUP_STATUSES]
    ignored = [g for g in kept if g.status == GroupStatus.IGNORED]

    found = default_resolver.detect(leads, _load_thresholds(store), ignored_groups=ignored)
    groups = kept + found
    _save_groups(store, groups)

    return {
        "scanned": len(leads),
        "found": len(found),
        "groups": found,
        "summary": default_resolver.summarize(groups),
    }


@app.get("/api/duplicates", tags=["Duplicates"])
async def list_groups(
    status: Optional[GroupStatus] = Query(None, description="Filter by status"),
    store: NamedValueStore = Depends(get_store),
):
    """List duplicate groups"""
    groups = _load_groups(store)
    if status:
        groups = [g for g in groups if g.status == status]
    return {"count": len(groups), "groups": groups}


@app.get("/api/duplicates/summary", tags=["Duplicates"])
async def group_summary(store: NamedValueStore = Depends(get_store)):
    """Review statistics over all duplicate groups"""
    return default_resolver.summarize(_load_groups(store))


@app.get("/api/duplicates/settings", tags=["Configuration"])
async def get_settings(store: NamedValueStore = Depends(get_store)):
    """Get detection thresholds"""
    return _load_thresholds(store)


@app.put("/api/duplicates/settings", tags=["Configuration"])
async def update_settings(
    thresholds: DuplicateThresholds,
    store: NamedValueStore = Depends(get_store),
):
    """Update detection thresholds"""
    store.set(STORE_KEYS["duplicate_settings"], thresholds.model_dump(mode="json"))
    return thresholds


@app.get("/api/duplicates/{group_id}", tags=["Duplicates"])
async def get_group(group_id: str, store: NamedValueStore = Depends(get_store)):
    """Get a duplicate group by ID"""
    groups = _load_groups(store)
    return groups[_find_group(groups, group_id)]


@app.post("/api/duplicates/{group_id}/merge", tags=["Duplicates"])
async def merge_group(
    group_id: str,
    request: MergeRequest,
    store: NamedValueStore = Depends(get_store),
):
    """
    Merge a duplicate group into its primary lead

    The primary lead is updated, the other members are removed, and the
    group becomes a merged audit record.
    """
    groups = _load_groups(store)
    index = _find_group(groups, group_id)
    leads = _load_leads(store)

    result = default_resolver.merge(
        groups[index],
        leads,
        request.primary_lead_id,
        reviewed_by=request.reviewed_by,
        reason=request.reason,
    )

    removed = set(result.removed_lead_ids)
    updated_leads = []
    for lead in leads:
        if lead.id in removed:
            continue
        updated_leads.append(result.merged_lead if lead.id == result.merged_lead.id else lead)

    groups[index] = result.group
    _save_leads(store, updated_leads)
    _save_groups(store, groups)

    return result


@app.post("/api/duplicates/{group_id}/ignore", tags=["Duplicates"])
async def ignore_group(
    group_id: str,
    request: Optional[ReviewRequest] = None,
    store: NamedValueStore = Depends(get_store),
):
    """Mark a duplicate group as not a duplicate"""
    groups = _load_groups(store)
    index = _find_group(groups, group_id)
    reviewed_by = request.reviewed_by if request else None
    groups[index] = default_resolver.ignore(groups[index], reviewed_by=reviewed_by)
    _save_groups(store, groups)
    return groups[index]


@app.post("/api/duplicates/{group_id}/reset", tags=["Duplicates"])
async def reset_group(group_id: str, store: NamedValueStore = Depends(get_store)):
    """Return an ignored group to pending review"""
    groups = _load_groups(store)
    index = _find_group(groups, group_id)
    groups[index] = default_resolver.reset(groups[index])
    _save_groups(store, groups)
    return groups[index]


# =============================================================================
# Statistics
# =============================================================================

@app.get("/api/stats", tags=["Info"])
async def get_stats(store: NamedValueStore = Depends(get_store)):
    """Get engine statistics"""
    return {
        "scoring_engine": default_engine.get_stats(),
        "stored_leads": len(store.get(STORE_KEYS["leads"], [])),
        "duplicates": default_resolver.summarize(_load_groups(store)),
    }


# =============================================================================
# Helper Functions
# =============================================================================

def _load_leads(store: NamedValueStore) -> List[Lead]:
    return [Lead(**data) for data in store.get(STORE_KEYS["leads"], [])]


def _save_leads(store: NamedValueStore, leads: List[Lead]):
    store.set(STORE_KEYS["leads"], [l.model_dump(mode="json") for l in leads])


def _load_groups(store: NamedValueStore) -> List[DuplicateGroup]:
    return [DuplicateGroup(**data) for data in store.get(STORE_KEYS["duplicate_groups"], [])]


def _save_groups(store: NamedValueStore, groups: List[DuplicateGroup]):
    store.set(STORE_KEYS["duplicate_groups"], [g.model_dump(mode="json") for g in groups])


def _load_thresholds(store: NamedValueStore) -> DuplicateThresholds:
    settings = store.get(STORE_KEYS["duplicate_settings"], DEFAULT_DUPLICATE_THRESHOLDS)
    return DuplicateThresholds(**settings)


def _detach_from_groups(store: NamedValueStore, lead_id: str, leads: List[Lead]):
    """Remove a lead from active groups, dissolving groups left with one member"""
    groups = _load_groups(store)
    thresholds = _load_thresholds(store)

    updated = []
    for group in groups:
        group = default_resolver.drop_lead(group, lead_id, leads, thresholds)
        if group is not None:
            updated.append(group)

    _save_groups(store, updated)


def _find_group(groups: List[DuplicateGroup], group_id: str) -> int:
    for index, group in enumerate(groups):
        if group.id == group_id:
            return index
    raise NotFoundError(f"Duplicate group {group_id} not found", group_id=group_id)


# =============================================================================
# Error Handlers
# =============================================================================

ERROR_STATUS_CODES = {
    ValidationError: 422,
    NotFoundError: 404,
    InvalidStateError: 409,
}


@app.exception_handler(LeadEngineError)
async def lead_engine_exception_handler(request: Request, exc: LeadEngineError):
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
    body = exc.to_dict()
    body["detail"] = exc.message
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
