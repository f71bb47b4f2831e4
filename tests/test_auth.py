"""
Authentication Tests

Tests for request authentication and feature flags.
"""

import hashlib

import pytest
from starlette.requests import Request

from src.auth.middleware import (
    AuthError,
    RequestAuthenticator,
    authenticate,
    get_bearer_token,
    get_remote_addr,
)
from src.utils.config import ConfigurationError
from src.utils.flags import DEFAULT_FLAGS, FeatureFlags


def make_request(headers=None, client=("203.0.113.7", 51000), user_id=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/v1/dashboard",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    if user_id is not None:
        scope["state"] = {"user_id": user_id}
    return Request(scope)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def flags():
    return FeatureFlags(overrides={})


@pytest.fixture
def authenticator(key_manager, flags):
    return RequestAuthenticator(key_manager, flags)


@pytest.fixture
def raw_key(key_manager):
    raw, _ = key_manager.create_key("test client")
    return raw


# =============================================================================
# HEADER PARSING TESTS
# =============================================================================

class TestHeaders:

    def test_bearer_token(self):
        assert get_bearer_token(make_request({"Authorization": "Bearer kseo_abc"})) == "kseo_abc"
        assert get_bearer_token(make_request({"Authorization": "bearer  kseo_abc "})) == "kseo_abc"

    def test_other_schemes_ignored(self):
        assert get_bearer_token(make_request({"Authorization": "Basic dXNlcjpwYXNz"})) == ""
        assert get_bearer_token(make_request()) == ""

    def test_remote_addr(self):
        assert get_remote_addr(make_request()) == "203.0.113.7"
        assert get_remote_addr(make_request(client=None)) == "0.0.0.0"


# =============================================================================
# AUTHENTICATION TESTS
# =============================================================================

class TestRequestAuthenticator:
    """Tests for actor resolution at the request boundary."""

    def test_logged_in_user(self, authenticator):
        assert authenticator.authenticate(make_request(user_id=7)) == "u:7"

    def test_valid_api_key(self, authenticator, raw_key):
        actor = authenticator.authenticate(make_request({"Authorization": f"Bearer {raw_key}"}))
        assert actor == "k:" + hashlib.sha256(raw_key.encode()).hexdigest()

    def test_invalid_api_key(self, authenticator):
        with pytest.raises(AuthError) as exc_info:
            authenticator.authenticate(make_request({"Authorization": "Bearer kseo_wrong"}))
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid API key."

    def test_invalid_key_rejected_even_when_anonymous_allowed(self, authenticator):
        with pytest.raises(AuthError):
            authenticator.authenticate(
                make_request({"Authorization": "Bearer kseo_wrong"}), allow_anonymous=True
            )

    def test_revoked_key_rejected(self, authenticator, key_manager):
        raw, api_key = key_manager.create_key("old client")
        key_manager.revoke_key(api_key.id)
        with pytest.raises(AuthError):
            authenticator.authenticate(make_request({"Authorization": f"Bearer {raw}"}))

    def test_missing_key_when_bearer_only(self, authenticator):
        with pytest.raises(AuthError) as exc_info:
            authenticator.authenticate(make_request())
        assert "Missing API key" in exc_info.value.message

    def test_anonymous_allowed(self, authenticator):
        assert authenticator.authenticate(make_request(), allow_anonymous=True) == "ip:203.0.113.7"

    def test_anonymous_when_bearer_only_disabled(self, key_manager):
        authenticator = RequestAuthenticator(key_manager, FeatureFlags(overrides={"bearer_only": False}))
        assert authenticator.authenticate(make_request()) == "ip:203.0.113.7"

    def test_module_level_helper(self, authenticator, raw_key):
        request = make_request({"Authorization": f"Bearer {raw_key}"})
        assert authenticate(request, authenticator=authenticator).startswith("k:")


# =============================================================================
# FEATURE FLAG TESTS
# =============================================================================

class TestFeatureFlags:

    def test_defaults(self):
        flags = FeatureFlags(overrides={})
        assert flags.all() == DEFAULT_FLAGS
        assert flags.is_enabled("rate_limit_enabled")
        assert flags.is_enabled("strict_json_validation")
        assert flags.is_enabled("bearer_only")

    def test_unknown_flag_disabled(self):
        flags = FeatureFlags(overrides={})
        assert flags.is_enabled("does_not_exist") is False
        assert flags.get("does_not_exist", "x") == "x"

    def test_overrides_from_settings(self, settings):
        settings = settings.model_copy(update={"KSEO_FEATURE_FLAGS": '{"rate_limit_enabled": false}'})
        flags = FeatureFlags(settings=settings)
        assert flags.is_enabled("rate_limit_enabled") is False
        assert flags.is_enabled("bearer_only") is True

    @pytest.mark.parametrize("raw", ["{oops", "[true]"])
    def test_malformed_overrides(self, settings, raw):
        with pytest.raises(ConfigurationError):
            FeatureFlags(settings=settings.model_copy(update={"KSEO_FEATURE_FLAGS": raw}))
