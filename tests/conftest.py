"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, a controllable clock, an in-process cache
and a small set of pages for all test modules.
"""

import pytest

from src.analysis.subjects import StaticSubjectResolver, Subject
from src.auth.keys import ApiKeyManager
from src.cache.memory import MemoryCache
from src.database import EventStore, create_db_engine, init_db, make_session_factory
from src.utils.config import Settings


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """Manually advanced wall clock. Starts on a minute boundary."""

    def __init__(self, start: float = 1_700_000_040.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Storage
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def broken_session_factory():
    """Session factory over a database with no tables: every query fails."""
    engine = create_db_engine("sqlite://")
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def events(session_factory) -> EventStore:
    return EventStore(session_factory)


@pytest.fixture
def cache(clock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def key_manager(session_factory) -> ApiKeyManager:
    return ApiKeyManager(session_factory)


# ============================================================================
# Configuration
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings independent of the host environment and any .env file."""
    return Settings(
        _env_file=None,
        DATABASE_URL=None,
        REDIS_URL=None,
        ENVIRONMENT="test",
        KSEO_ACTIVE_KEY_ID="dev",
        KSEO_REQUIRE_EXPLICIT_KEY=False,
        APP_AUTH_KEY="test-auth-key",
        APP_AUTH_SALT="test-auth-salt",
        KSEO_RATE_LIMITS="",
        KSEO_FEATURE_FLAGS="",
        ALERT_EMAIL_ENABLED=False,
        ALERT_EMAIL_TO=None,
        ALERT_WEBHOOK_URL=None,
        RESEND_API_KEY=None,
        SITE_URL="https://shop.example.com",
        SITEMAP_URL=None,
        MAX_URLS_PER_RUN=10,
        BATCH_TIME_BUDGET_SECONDS=20.0,
        WEEKLY_CRON_ENABLED=False,
    )


# ============================================================================
# Pages
# ============================================================================

@pytest.fixture
def subjects():
    return [
        Subject(
            id="1",
            title="Best Engine Oil",
            content="<h1>Best Engine Oil</h1><p>Compare Castrol Edge and Mobil One for your car.</p>",
            url="https://shop.example.com/best-engine-oil",
        ),
        Subject(
            id="2",
            title="Engine Oil Guide",
            content="<p>How to choose engine oil. A guide to viscosity grades.</p>",
            url="https://shop.example.com/engine-oil-guide",
        ),
        Subject(
            id="3",
            title="Brake Pads",
            content="<p>Buy brake pads at the best price. Order today.</p>",
            url="https://shop.example.com/brake-pads",
        ),
    ]


@pytest.fixture
def resolver(subjects) -> StaticSubjectResolver:
    return StaticSubjectResolver(subjects)
