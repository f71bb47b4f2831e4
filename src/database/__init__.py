"""
KSEO Database Layer

Usage:
    from src.database import init_db, EventStore, ResultPayload

    init_db()
    store = EventStore()
    store.save_result("42", ResultPayload(seed="engine oil", analysis=result))
    events = store.list_events(event_type="decay", limit=20)
"""

from .models import (
    Base,
    ResultRecord,
    EventRecord,
    ApiKeyRecord,
    CacheEntry,
    IntegrationSecret,
    utcnow,
)
from .session import (
    SessionFactory,
    get_database_url,
    create_db_engine,
    get_engine,
    make_session_factory,
    get_session_factory,
    session_scope,
    init_db,
    check_db_connection,
)
from .repository import (
    EventStore,
    ResultPayload,
    StoredResult,
    Event,
    StorageError,
)

__all__ = [
    # Models
    "Base",
    "ResultRecord",
    "EventRecord",
    "ApiKeyRecord",
    "CacheEntry",
    "IntegrationSecret",
    "utcnow",
    # Session
    "SessionFactory",
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "make_session_factory",
    "get_session_factory",
    "session_scope",
    "init_db",
    "check_db_connection",
    # Repository
    "EventStore",
    "ResultPayload",
    "StoredResult",
    "Event",
    "StorageError",
]
