"""
Keyring for envelope encryption.

Key material is operator-managed: the active key id comes from
KSEO_ACTIVE_KEY_ID and the bytes for id X from KSEO_APP_KEY_<X>
(base64, 32 bytes once decoded).

Without an explicit key, a key is derived from APP_AUTH_KEY and
APP_AUTH_SALT under the id "dev". That key is only as secret as the two
host values it comes from; it is refused in production and whenever
KSEO_REQUIRE_EXPLICIT_KEY is set.
"""

import base64
import binascii
import hashlib
import logging
import os
from typing import Mapping, Optional, Tuple

from src.utils.config import ConfigurationError, Settings, get_settings

logger = logging.getLogger(__name__)

KEY_ENV_PREFIX = "KSEO_APP_KEY_"
KEY_LENGTH = 32
FALLBACK_KEY_ID = "dev"


def derive_fallback_key(auth_key: str, auth_salt: str) -> bytes:
    """sha256("<auth_key>|<auth_salt>") as raw bytes."""
    return hashlib.sha256(f"{auth_key}|{auth_salt}".encode("utf-8")).digest()


class Keyring:
    """
    Resolves key ids to 32-byte keys.

    Usage:
        keyring = Keyring()
        key_id, key = keyring.get_active_key()
        old_key = keyring.get_key_by_id("2024a")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings or get_settings()
        self._environ = environ if environ is not None else os.environ
        self.is_fallback = False
        self._active = self._resolve_active()

    def _resolve_active(self) -> Tuple[str, bytes]:
        active_id = (self.settings.KSEO_ACTIVE_KEY_ID or FALLBACK_KEY_ID).strip()
        if "|" in active_id:
            raise ConfigurationError("KSEO_ACTIVE_KEY_ID must not contain '|'")
        raw = self._environ.get(KEY_ENV_PREFIX + active_id.upper())

        if raw:
            key = self._decode_key(raw)
            if key is None:
                raise ConfigurationError(
                    f"{KEY_ENV_PREFIX}{active_id.upper()} must be base64 of {KEY_LENGTH} bytes"
                )
            logger.info(f"Keyring active key id: {active_id}")
            self.is_fallback = False
            return active_id, key

        if self.settings.is_production or self.settings.KSEO_REQUIRE_EXPLICIT_KEY:
            raise ConfigurationError(
                f"No key configured for active id '{active_id}' "
                f"(set {KEY_ENV_PREFIX}{active_id.upper()})"
            )

        self.is_fallback = True
        logger.warning(
            "No explicit encryption key configured; using key derived from "
            "APP_AUTH_KEY/APP_AUTH_SALT. Do not use this in production."
        )
        return FALLBACK_KEY_ID, derive_fallback_key(
            self.settings.APP_AUTH_KEY, self.settings.APP_AUTH_SALT
        )

    @staticmethod
    def _decode_key(raw: str) -> Optional[bytes]:
        try:
            key = base64.b64decode(raw.strip(), validate=True)
        except (binascii.Error, ValueError):
            return None
        return key if len(key) == KEY_LENGTH else None

    @property
    def active_key_id(self) -> str:
        return self._active[0]

    def get_active_key(self) -> Tuple[str, bytes]:
        """(key_id, key_bytes) used for new envelopes."""
        return self._active

    def get_key_by_id(self, key_id: str) -> Optional[bytes]:
        """Key bytes for key_id, or None when not configured or malformed."""
        if not key_id:
            return None
        if key_id == self._active[0]:
            return self._active[1]
        raw = self._environ.get(KEY_ENV_PREFIX + key_id.upper())
        if not raw:
            return None
        key = self._decode_key(raw)
        if key is None:
            logger.warning(f"Ignoring malformed key material for key id {key_id}")
        return key

