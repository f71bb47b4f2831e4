"""
Security Module

Provides:
1. Envelope encryption (Keyring, Crypto, SecretStore) for secrets at rest
2. Fixed-window rate limiting per route and actor
3. API key auth for programmatic access

Usage:
    crypto = Crypto(Keyring())
    envelope = crypto.encrypt("token")
    crypto.decrypt(envelope)            # "token", or None if tampered

    limiter = RateLimiter(get_cache_store())
    decision = limiter.check("ai_keywords", actor, 10)

    actor = RequestAuthenticator(ApiKeyManager(), FeatureFlags()).authenticate(request)
"""

from .keyring import Keyring, derive_fallback_key
from .crypto import Crypto, CryptoError, Envelope
from .secret_store import SecretStore
from .rate_limiter import RateLimiter, RateLimitDecision, resolve_actor
from .keys import ApiKeyManager, ApiKey, hash_key
from .middleware import (
    AuthError,
    RequestAuthenticator,
    authenticate,
    get_bearer_token,
)

__all__ = [
    # Encryption
    "Keyring",
    "derive_fallback_key",
    "Crypto",
    "CryptoError",
    "Envelope",
    "SecretStore",
    # Rate limiting
    "RateLimiter",
    "RateLimitDecision",
    "resolve_actor",
    # API keys
    "ApiKeyManager",
    "ApiKey",
    "hash_key",
    # Request auth
    "AuthError",
    "RequestAuthenticator",
    "authenticate",
    "get_bearer_token",
]
