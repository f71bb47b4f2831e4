"""
Encrypted storage for integration credentials (search console tokens,
webhook secrets, third-party API keys).

Values are stored as envelopes (see crypto.py). A value that no longer
decrypts, for example after its key was removed from the keyring, reads
back as None.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import IntegrationSecret, utcnow
from src.database.session import SessionFactory, get_session_factory, session_scope
from .crypto import Crypto

logger = logging.getLogger(__name__)


class SecretStore:
    """
    Usage:
        store = SecretStore(crypto)
        store.put("gsc_refresh_token", token)
        token = store.get("gsc_refresh_token")
    """

    def __init__(self, crypto: Crypto, session_factory: Optional[SessionFactory] = None):
        self.crypto = crypto
        self._session_factory = session_factory or get_session_factory()

    def put(self, name: str, value: str) -> bool:
        name = (name or "").strip()
        if not name:
            raise ValueError("secret name is required")

        envelope = self.crypto.encrypt(value)
        try:
            with session_scope(self._session_factory) as db:
                row = db.scalars(select(IntegrationSecret).where(IntegrationSecret.name == name)).first()
                if row is None:
                    db.add(IntegrationSecret(name=name, envelope=envelope, updated_at=utcnow()))
                else:
                    row.envelope = envelope
                    row.updated_at = utcnow()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store secret {name}: {e}")
            return False

        logger.info(f"Stored secret {name}")
        return True

    def get(self, name: str) -> Optional[str]:
        try:
            with session_scope(self._session_factory) as db:
                row = db.scalars(select(IntegrationSecret).where(IntegrationSecret.name == name)).first()
                envelope = row.envelope if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load secret {name}: {e}")
            return None

        if envelope is None:
            return None
        value = self.crypto.decrypt(envelope)
        if value is None:
            logger.warning(f"Secret {name} could not be decrypted; treating as absent")
        return value

    def delete(self, name: str) -> bool:
        try:
            with session_scope(self._session_factory) as db:
                result = db.execute(delete(IntegrationSecret).where(IntegrationSecret.name == name))
                return bool(result.rowcount)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete secret {name}: {e}")
            return False

    def names(self) -> List[str]:
        try:
            with session_scope(self._session_factory) as db:
                return list(db.scalars(select(IntegrationSecret.name).order_by(IntegrationSecret.name)).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list secrets: {e}")
            return []
