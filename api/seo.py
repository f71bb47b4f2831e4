"""
SEO API

Endpoints:
- POST /api/v1/keywords            keyword suggestions for a page
- POST /api/v1/assignments         analyze, assign, recommend and store
- GET  /api/v1/assignments         latest stored result for a page
- GET  /api/v1/dashboard           bucket counts and recent events
- GET  /api/v1/events              event listing
- POST /api/v1/keywords/research   queue a keyword research job
"""

import json
import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StringConstraints, ValidationError

from src.analysis import Assignment, analyze, build_recommendations
from src.analysis.subjects import Subject
from src.database import ResultPayload, StorageError

from api.dependencies import Services, get_services, require_actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["SEO"])

MAX_BODY_BYTES = 65536
MAX_KEYWORDS = 50
SUGGESTION_LIMIT = 20

KEYWORDS_LIMIT = ("ai_keywords", 10)
ASSIGNMENTS_LIMIT = ("ai_assignments", 10)
RESEARCH_LIMIT = ("POST:/api/v1/keywords/research", 60)

DEFAULT_REASONS = {
    "TopicalMatch": 70,
    "IntentMatch": 90,
    "Opportunity": 65,
    "DifficultyMatch": 60,
    "HistoricalAffinity": 80,
}
DEFAULT_SCORE = {
    "total": 82,
    "breakdown": {"onpage": 40, "intent": 18, "difficulty": 12, "behavior": 12},
}
DEFAULT_BUCKET = "Quick Win"
BUCKETS = ("Quick Win", "Easy Untapped", "High-Volume Hard")


# =============================================================================
# REQUEST MODELS
# =============================================================================

class KeywordsRequest(BaseModel):
    subject_id: Optional[str] = None
    seed: str = ""
    locale: str = "en"


class AssignmentRequest(BaseModel):
    subject_id: Optional[str] = None
    seed: str = ""
    keywords: List[str] = Field(default_factory=list)


Term = Annotated[str, StringConstraints(min_length=1, max_length=128)]


class ResearchRequest(BaseModel):
    terms: List[Term] = Field(..., min_length=1, max_length=200)
    site_id: str
    locale: Optional[Annotated[str, StringConstraints(pattern=r"^[a-z]{2}(-[A-Z]{2})?$")]] = None


# =============================================================================
# HELPERS
# =============================================================================

def rate_limited(
    services: Services,
    limit: tuple,
    actor: str,
    response: Response,
) -> Optional[JSONResponse]:
    """429 response when over the limit; otherwise copies the headers onto response."""
    if not services.flags.is_enabled("rate_limit_enabled"):
        return None
    route, per_minute = limit
    decision = services.rate_limiter.check(route, actor, per_minute)
    if not decision.allowed:
        return JSONResponse({"error": "rate_limited"}, status_code=429, headers=decision.headers)
    for name, value in decision.headers.items():
        response.headers[name] = value
    return None


def load_subject(services: Services, subject_id: Optional[str]) -> Subject:
    subject_id = (subject_id or "").strip()
    if not subject_id:
        raise HTTPException(status_code=400, detail="subject_id_required")
    subject = services.resolver.get(subject_id)
    if subject is None:
        raise HTTPException(status_code=404, detail="not_found")
    return subject


def clean_text(value: str, max_length: int = 255) -> str:
    return " ".join(str(value).split())[:max_length]


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/keywords")
def suggest_keywords(
    body: KeywordsRequest,
    response: Response,
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Keyword suggestions for a page. An empty seed falls back to the page title."""
    limited = rate_limited(services, KEYWORDS_LIMIT, actor, response)
    if limited:
        return limited

    subject = load_subject(services, body.subject_id)
    seed = clean_text(body.seed) or subject.title
    analysis = analyze(subject.content, seed, clean_text(body.locale, 10) or "en")

    return {
        "ok": True,
        "keywords": analysis.suggestions[:SUGGESTION_LIMIT],
        "analysis": analysis.to_dict(),
    }


@router.post("/assignments")
def create_assignment(
    body: AssignmentRequest,
    response: Response,
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Analyze a page, assign it, build recommendations and store the result."""
    limited = rate_limited(services, ASSIGNMENTS_LIMIT, actor, response)
    if limited:
        return limited

    subject = load_subject(services, body.subject_id)
    seed = clean_text(body.seed) or subject.title
    keywords = [clean_text(k) for k in body.keywords[:MAX_KEYWORDS]]

    analysis = analyze(subject.content, seed, "en")
    assignment = Assignment(url=subject.url, fit=75, reasons=dict(DEFAULT_REASONS))
    before_after = {"before": 70, "after_simulated": 82}
    recommendations = build_recommendations(analysis, subject.title)

    result_id = services.events.save_result(subject.id, ResultPayload(
        seed=seed,
        keywords=keywords,
        analysis=analysis,
        assignment=assignment,
        score_before=before_after["before"],
        score_after=before_after["after_simulated"],
    ))
    if result_id is None:
        logger.error(f"Assignment for subject {subject.id} was not stored")

    return {
        "entities": list(analysis.entities),
        "intent": analysis.intent.value,
        "difficulty": analysis.difficulty,
        "suggestions": list(analysis.suggestions),
        "recommendations": recommendations.to_dict(),
        "assignment": assignment.to_dict(),
        "score": DEFAULT_SCORE,
        "bucket": DEFAULT_BUCKET,
        "before_after": before_after,
        "result_id": result_id,
    }


@router.get("/assignments")
def get_latest_assignment(
    subject_id: Optional[str] = Query(default=None),
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Latest stored result for a page."""
    subject_id = (subject_id or "").strip()
    if not subject_id:
        raise HTTPException(status_code=400, detail="subject_id_required")
    try:
        latest = services.events.get_latest_by_subject(subject_id)
    except StorageError as e:
        logger.error(f"Latest result lookup failed: {e}")
        raise HTTPException(status_code=503, detail="storage_unavailable")
    if latest is None:
        raise HTTPException(status_code=404, detail="not_found")
    return latest.to_dict()


@router.get("/dashboard")
def dashboard(
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Bucket counts and the 50 newest events."""
    try:
        events = services.events.list_events(limit=50)
    except StorageError as e:
        logger.error(f"Dashboard event listing failed: {e}")
        raise HTTPException(status_code=503, detail="storage_unavailable")
    return {
        "counts": {bucket: 0 for bucket in BUCKETS},
        "events": [e.to_dict() for e in events],
    }


@router.get("/events")
def list_events(
    type: Optional[str] = Query(default=None, max_length=40),
    subject_id: Optional[str] = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    try:
        events = services.events.list_events(
            event_type=type, subject_id=subject_id, limit=limit, offset=offset
        )
    except StorageError as e:
        logger.error(f"Event listing failed: {e}")
        raise HTTPException(status_code=503, detail="storage_unavailable")
    return {"events": [e.to_dict() for e in events], "limit": limit, "offset": offset}


@router.post("/keywords/research", status_code=202)
async def keywords_research(
    request: Request,
    actor: str = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """
    Queue a keyword research job.

    Body: {"terms": [...], "site_id": "...", "locale": "en-US"}
    """
    strict = services.flags.is_enabled("strict_json_validation")
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if strict and content_type != "application/json":
        raise HTTPException(status_code=415, detail="Content-Type must be application/json")

    raw = await request.body()
    if len(raw) > MAX_BODY_BYTES:
        raise HTTPException(status_code=413, detail="Body too large")

    try:
        data: Any = json.loads(raw or b"null")
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be valid JSON")
    if not isinstance(data, dict) or not data.get("terms") or not data.get("site_id"):
        raise HTTPException(status_code=400, detail="terms and site_id required")

    try:
        research = ResearchRequest.model_validate({**data, "site_id": str(data["site_id"])})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))

    headers: Dict[str, str] = {}
    if services.flags.is_enabled("rate_limit_enabled"):
        route, per_minute = RESEARCH_LIMIT
        decision = services.rate_limiter.check(route, actor, per_minute)
        if not decision.allowed:
            return JSONResponse({"error": "rate_limited"}, status_code=429, headers=decision.headers)
        headers = decision.headers

    services.events.log_event(
        "keyword_research_queued",
        details={"site_id": research.site_id, "terms": research.terms, "locale": research.locale},
    )
    return Response(status_code=202, headers=headers)
