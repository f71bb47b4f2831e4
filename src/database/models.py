"""
SQLAlchemy Models for KSEO Booster

Tables:
1. ai_keywords         - append-only analysis results (one row per run)
2. ai_events           - append-only typed events (alerts, detector findings)
3. api_keys            - hashed API keys for programmatic access
4. cache_entries       - fallback key/value store with expiry
5. integration_secrets - encrypted third-party credentials

JSON payloads are stored as TEXT and decoded leniently by the
repository layer, so a hand-edited or truncated row reads back as an
empty container instead of raising.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Column, DateTime, Index, Integer, String, Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# BIGINT autoincrement on PostgreSQL, INTEGER PRIMARY KEY (rowid) on SQLite
PrimaryKey = BigInteger().with_variant(Integer(), "sqlite")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ResultRecord(Base):
    """One analysis/assignment run for a subject. Never updated in place."""
    __tablename__ = "ai_keywords"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    subject_id = Column(String(255), nullable=False)
    seed = Column(String(255), nullable=True)

    keywords = Column(Text, nullable=True)
    analysis = Column(Text, nullable=True)
    assignment = Column(Text, nullable=True)

    score_before = Column(Integer, nullable=True)
    score_after = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_ai_keywords_subject_created", "subject_id", "created_at"),
        Index("idx_ai_keywords_created", "created_at"),
    )


class EventRecord(Base):
    """Typed event: cannibalization, decay, alert_sent, ..."""
    __tablename__ = "ai_events"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    type = Column(String(40), nullable=False)
    subject_id = Column(String(255), nullable=True)
    related_subject_ids = Column(Text, nullable=True)
    details = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_ai_events_type_created", "type", "created_at"),
        Index("idx_ai_events_subject", "subject_id"),
    )


class ApiKeyRecord(Base):
    """API key. Only the SHA-256 hash of the secret is stored."""
    __tablename__ = "api_keys"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=False)
    key_hash = Column(String(64), nullable=False, unique=True)
    scope = Column(String(255), nullable=False, default="read")
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_used_at = Column(DateTime, nullable=True)


class CacheEntry(Base):
    """Key/value row with expiry; used when no shared cache is configured."""
    __tablename__ = "cache_entries"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False, unique=True)
    value = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)


class IntegrationSecret(Base):
    """Envelope-encrypted credential for an external integration."""
    __tablename__ = "integration_secrets"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    envelope = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
