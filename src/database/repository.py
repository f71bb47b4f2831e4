"""
Repository Layer - Results and Events

Append-only storage for analysis results and typed events.
Handles all SQLAlchemy complexity internally.

Write operations report failure as None/False and log the cause.
Read operations raise StorageError so callers can tell "nothing stored"
apart from "could not ask".
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.analysis.models import AnalysisResult, Assignment
from .models import EventRecord, ResultRecord, utcnow
from .session import SessionFactory, get_session_factory, session_scope

logger = logging.getLogger(__name__)

MAX_EVENT_PAGE = 500
DEFAULT_EVENT_PAGE = 50


class StorageError(Exception):
    """A query against the result/event tables failed."""
    pass


# =============================================================================
# RECORD TYPES
# =============================================================================

@dataclass
class ResultPayload:
    """Input for save_result()."""
    seed: str = ""
    keywords: List[str] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    assignment: Optional[Assignment] = None
    score_before: Optional[int] = None
    score_after: Optional[int] = None


@dataclass
class StoredResult:
    """A persisted analysis run."""
    id: int
    subject_id: str
    seed: str
    keywords: List[str]
    analysis: AnalysisResult
    assignment: Dict[str, Any]
    score_before: Optional[int]
    score_after: Optional[int]
    created_at: datetime
    updated_at: datetime

    @property
    def assignment_url(self) -> Optional[str]:
        url = self.assignment.get("url")
        return str(url) if url else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "seed": self.seed,
            "keywords": list(self.keywords),
            "analysis": self.analysis.to_dict(),
            "assignment": dict(self.assignment),
            "score_before": self.score_before,
            "score_after": self.score_after,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Event:
    """A persisted, immutable event."""
    id: int
    type: str
    subject_id: Optional[str]
    related_subject_ids: List[str]
    details: Dict[str, Any]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "subject_id": self.subject_id,
            "related_subject_ids": list(self.related_subject_ids),
            "details": dict(self.details),
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# JSON HELPERS
# =============================================================================

def _encode(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def _decode(raw: Optional[str], expected: type) -> Any:
    """Decode a JSON column; anything absent or malformed becomes expected()."""
    if not raw:
        return expected()
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return expected()
    return value if isinstance(value, expected) else expected()


def _to_result(row: ResultRecord) -> StoredResult:
    keywords = _decode(row.keywords, list)
    return StoredResult(
        id=row.id,
        subject_id=row.subject_id,
        seed=row.seed or "",
        keywords=[str(k) for k in keywords],
        analysis=AnalysisResult.from_dict(_decode(row.analysis, dict)),
        assignment=_decode(row.assignment, dict),
        score_before=row.score_before,
        score_after=row.score_after,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_event(row: EventRecord) -> Event:
    related = _decode(row.related_subject_ids, list)
    return Event(
        id=row.id,
        type=row.type,
        subject_id=row.subject_id,
        related_subject_ids=[str(r) for r in related],
        details=_decode(row.details, dict),
        created_at=row.created_at,
    )


# =============================================================================
# EVENT STORE
# =============================================================================

class EventStore:
    """
    Result and event storage.

    Usage:
        store = EventStore()
        result_id = store.save_result("42", ResultPayload(seed="engine oil", ...))
        latest = store.get_latest_by_subject("42")
        store.log_event("decay", details={"url": "https://example.com/a"})
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory or get_session_factory()

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def save_result(self, subject_id: str, payload: ResultPayload) -> Optional[int]:
        """
        Insert a new result row.

        Raises:
            ValueError: subject_id is empty

        Returns:
            Inserted row id, or None when the insert failed
        """
        subject_id = str(subject_id or "").strip()
        if not subject_id:
            raise ValueError("subject_id is required")

        now = utcnow()
        row = ResultRecord(
            subject_id=subject_id,
            seed=(payload.seed or "")[:255] or None,
            keywords=_encode(list(payload.keywords)),
            analysis=_encode(payload.analysis.to_dict()) if payload.analysis else None,
            assignment=_encode(payload.assignment.to_dict()) if payload.assignment else None,
            score_before=int(payload.score_before) if payload.score_before is not None else None,
            score_after=int(payload.score_after) if payload.score_after is not None else None,
            created_at=now,
            updated_at=now,
        )

        try:
            with session_scope(self._session_factory) as db:
                db.add(row)
                db.flush()
                result_id = row.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to save result for subject {subject_id}: {e}")
            return None

        logger.debug(f"Saved result {result_id} for subject {subject_id}")
        return result_id

    def get_latest_by_subject(self, subject_id: str) -> Optional[StoredResult]:
        """Highest-id result for a subject, or None."""
        subject_id = str(subject_id or "").strip()
        if not subject_id:
            raise ValueError("subject_id is required")

        stmt = (
            select(ResultRecord)
            .where(ResultRecord.subject_id == subject_id)
            .order_by(ResultRecord.id.desc())
            .limit(1)
        )
        try:
            with session_scope(self._session_factory) as db:
                row = db.scalars(stmt).first()
                return _to_result(row) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load latest result for {subject_id}: {e}") from e

    def recent_results(self, limit: int) -> List[StoredResult]:
        """Newest results first."""
        stmt = select(ResultRecord).order_by(ResultRecord.id.desc()).limit(max(1, int(limit)))
        try:
            with session_scope(self._session_factory) as db:
                return [_to_result(r) for r in db.scalars(stmt).all()]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load recent results: {e}") from e

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def log_event(
        self,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        subject_id: Optional[str] = None,
        related_subject_ids: Optional[List[str]] = None,
    ) -> bool:
        """
        Append an event.

        Returns:
            True on success, False when the insert failed
        """
        event_type = (event_type or "").strip()[:40]
        if not event_type:
            raise ValueError("event type is required")

        row = EventRecord(
            type=event_type,
            subject_id=str(subject_id) if subject_id is not None else None,
            related_subject_ids=(
                _encode([str(r) for r in related_subject_ids])
                if related_subject_ids is not None else None
            ),
            details=_encode(details or {}),
            created_at=utcnow(),
        )
        try:
            with session_scope(self._session_factory) as db:
                db.add(row)
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to log {event_type} event: {e}")
            return False

    def list_events(
        self,
        event_type: Optional[str] = None,
        subject_id: Optional[str] = None,
        limit: int = DEFAULT_EVENT_PAGE,
        offset: int = 0,
    ) -> List[Event]:
        """
        List events newest-first.

        Args:
            event_type: Filter by type
            subject_id: Filter by subject
            limit: Page size, clamped to 1-500
            offset: Rows to skip, floored at 0
        """
        limit = min(MAX_EVENT_PAGE, max(1, int(limit)))
        offset = max(0, int(offset))

        stmt = select(EventRecord)
        if event_type:
            stmt = stmt.where(EventRecord.type == event_type)
        if subject_id:
            stmt = stmt.where(EventRecord.subject_id == str(subject_id))
        stmt = stmt.order_by(EventRecord.id.desc()).limit(limit).offset(offset)

        try:
            with session_scope(self._session_factory) as db:
                return [_to_event(r) for r in db.scalars(stmt).all()]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list events: {e}") from e
