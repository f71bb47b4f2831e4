"""
Authentication for API requests.

Resolves the actor a request runs as:
1. logged-in user supplied by the host (request.state.user_id)
2. Authorization: Bearer <api key> matching an active key
3. client address, only when anonymous access is allowed
"""

import logging
from typing import Optional

from fastapi import Request

from src.utils.flags import FeatureFlags
from .keys import ApiKeyManager
from .rate_limiter import resolve_actor

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Request rejected at the auth boundary."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if header[:7].lower() == "bearer ":
        return header[7:].strip()
    return ""


def get_remote_addr(request: Request) -> str:
    return request.client.host if request.client else "0.0.0.0"


class RequestAuthenticator:
    """
    Usage:
        authenticator = RequestAuthenticator(ApiKeyManager(), FeatureFlags())
        actor = authenticator.authenticate(request)   # "u:7", "k:<sha256>", "ip:1.2.3.4"
    """

    def __init__(self, key_manager: ApiKeyManager, flags: FeatureFlags):
        self.key_manager = key_manager
        self.flags = flags

    def authenticate(self, request: Request, allow_anonymous: bool = False) -> str:
        """
        Actor id for the request.

        Raises:
            AuthError: invalid key, or no credentials where they are required
        """
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            return resolve_actor(user_id=str(user_id))

        token = get_bearer_token(request)
        if token:
            if self.key_manager.validate_key(token) is None:
                logger.info("Rejected request with invalid API key")
                raise AuthError("Invalid API key.")
            return resolve_actor(bearer=token)

        if allow_anonymous or not self.flags.is_enabled("bearer_only"):
            return resolve_actor(remote_addr=get_remote_addr(request))

        raise AuthError("Missing API key. Include Authorization: Bearer <key>.")


def authenticate(
    request: Request,
    authenticator: Optional[RequestAuthenticator] = None,
    allow_anonymous: bool = False,
) -> str:
    authenticator = authenticator or RequestAuthenticator(ApiKeyManager(), FeatureFlags())
    return authenticator.authenticate(request, allow_anonymous=allow_anonymous)
