"""
API Key Management

Generate, validate, and manage API keys. Only the SHA-256 hash of a key
is stored; the raw key is shown once at creation.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import ApiKeyRecord, utcnow
from src.database.session import SessionFactory, get_session_factory, session_scope

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_REVOKED = "revoked"


@dataclass
class ApiKey:
    """API Key data model."""
    id: int
    label: str
    key_hash: str
    scope: str
    status: str
    created_at: datetime
    last_used_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization. The hash is not included."""
        return {
            "id": self.id,
            "label": self.label,
            "scope": self.scope,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }

    @classmethod
    def from_record(cls, row: ApiKeyRecord) -> "ApiKey":
        return cls(
            id=row.id,
            label=row.label,
            key_hash=row.key_hash,
            scope=row.scope,
            status=row.status,
            created_at=row.created_at,
            last_used_at=row.last_used_at,
        )


def hash_key(raw_key: str) -> str:
    """Create hash of API key for secure storage."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


class ApiKeyManager:
    """
    Manages API keys in the api_keys table.

    Usage:
        manager = ApiKeyManager()
        raw, key = manager.create_key("zapier", scope="read")
        key = manager.validate_key(raw)
    """

    SCOPE_READ = "read"
    SCOPE_WRITE = "write"
    SCOPE_ADMIN = "admin"

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory or get_session_factory()

    def create_key(self, label: str, scope: str = SCOPE_READ) -> Tuple[str, ApiKey]:
        """
        Create a new API key.

        Returns:
            Tuple of (raw_key, ApiKey)
            IMPORTANT: raw_key is only returned once and cannot be recovered!
        """
        label = (label or "").strip()
        if not label:
            raise ValueError("label is required")

        raw_key = f"kseo_{secrets.token_urlsafe(32)}"
        row = ApiKeyRecord(
            label=label[:255],
            key_hash=hash_key(raw_key),
            scope=scope or self.SCOPE_READ,
            status=STATUS_ACTIVE,
            created_at=utcnow(),
        )
        with session_scope(self._session_factory) as db:
            db.add(row)
            db.flush()
            api_key = ApiKey.from_record(row)

        logger.info(f"Created API key {api_key.id} ({label})")
        return raw_key, api_key

    def validate_key(self, raw_key: str) -> Optional[ApiKey]:
        """
        Active key matching raw_key, or None.

        Records last_used_at on a match; a failure to record it does not
        reject the key.
        """
        if not raw_key:
            return None

        key_hash = hash_key(raw_key)
        try:
            with session_scope(self._session_factory) as db:
                row = db.scalars(
                    select(ApiKeyRecord).where(ApiKeyRecord.key_hash == key_hash).limit(1)
                ).first()
                if row is None or row.status != STATUS_ACTIVE:
                    return None
                api_key = ApiKey.from_record(row)
        except SQLAlchemyError as e:
            logger.error(f"API key lookup failed: {e}")
            return None

        self._touch(key_hash)
        return api_key

    def _touch(self, key_hash: str) -> None:
        try:
            with session_scope(self._session_factory) as db:
                db.execute(
                    update(ApiKeyRecord)
                    .where(ApiKeyRecord.key_hash == key_hash)
                    .values(last_used_at=utcnow())
                )
        except SQLAlchemyError as e:
            logger.warning(f"Could not record API key use: {e}")

    def get_key(self, key_id: int) -> Optional[ApiKey]:
        """Get key by ID."""
        with session_scope(self._session_factory) as db:
            row = db.get(ApiKeyRecord, key_id)
            return ApiKey.from_record(row) if row else None

    def list_keys(self, include_revoked: bool = False) -> List[ApiKey]:
        """List API keys, newest first."""
        stmt = select(ApiKeyRecord).order_by(ApiKeyRecord.id.desc())
        if not include_revoked:
            stmt = stmt.where(ApiKeyRecord.status == STATUS_ACTIVE)
        with session_scope(self._session_factory) as db:
            return [ApiKey.from_record(r) for r in db.scalars(stmt).all()]

    def revoke_key(self, key_id: int) -> bool:
        """Revoke (deactivate) an API key."""
        with session_scope(self._session_factory) as db:
            row = db.get(ApiKeyRecord, key_id)
            if row is None:
                return False
            row.status = STATUS_REVOKED
        logger.info(f"Revoked API key: {key_id}")
        return True

    def rotate_key(self, key_id: int) -> Optional[Tuple[str, ApiKey]]:
        """
        Rotate an API key (create new, revoke old).

        Returns:
            Tuple of (new_raw_key, new_ApiKey) or None if key not found
        """
        old_key = self.get_key(key_id)
        if not old_key:
            return None

        new_raw_key, new_key = self.create_key(f"{old_key.label} (rotated)", scope=old_key.scope)
        self.revoke_key(key_id)

        logger.info(f"Rotated API key: {key_id} -> {new_key.id}")
        return new_raw_key, new_key
