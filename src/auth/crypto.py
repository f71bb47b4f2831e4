"""
Envelope encryption for secrets at rest.

Format (outer base64 over a pipe-delimited payload):

    base64("v1|<key_id>|b64(nonce)|b64(tag)|b64(ciphertext)")

AES-256-GCM with associated data "v1|<key_id>", so the version and key id
are authenticated along with the ciphertext. decrypt() fails closed:
anything malformed, tampered or encrypted under a different key yields
None, never partial plaintext.
"""

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .keyring import Keyring

logger = logging.getLogger(__name__)

VERSION = "v1"
NONCE_SIZE = 12
TAG_SIZE = 16


class CryptoError(Exception):
    """Envelope could not be parsed or authenticated."""
    pass


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(text: str) -> bytes:
    """Strict base64: rejects non-alphabet characters and non-canonical encodings."""
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"invalid base64: {e}") from e
    if _b64(data) != text:
        raise CryptoError("non-canonical base64")
    return data


@dataclass(frozen=True)
class Envelope:
    """Parsed envelope. Construction validates field shapes."""
    version: str
    key_id: str
    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def __post_init__(self):
        if self.version != VERSION:
            raise CryptoError(f"unsupported envelope version: {self.version!r}")
        if not self.key_id or "|" in self.key_id:
            raise CryptoError("invalid key id")
        if len(self.nonce) != NONCE_SIZE:
            raise CryptoError("invalid nonce length")
        if len(self.tag) != TAG_SIZE:
            raise CryptoError("invalid tag length")

    @property
    def aad(self) -> bytes:
        return f"{self.version}|{self.key_id}".encode("utf-8")

    def encode(self) -> str:
        payload = "|".join([
            self.version,
            self.key_id,
            _b64(self.nonce),
            _b64(self.tag),
            _b64(self.ciphertext),
        ])
        return _b64(payload.encode("utf-8"))

    @classmethod
    def parse(cls, text: str) -> "Envelope":
        if not isinstance(text, str) or not text:
            raise CryptoError("empty envelope")
        try:
            payload = _unb64(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("envelope is not text") from e
        parts = payload.split("|")
        if len(parts) != 5:
            raise CryptoError(f"expected 5 envelope fields, got {len(parts)}")
        version, key_id, nonce_b64, tag_b64, ct_b64 = parts
        return cls(
            version=version,
            key_id=key_id,
            nonce=_unb64(nonce_b64),
            tag=_unb64(tag_b64),
            ciphertext=_unb64(ct_b64),
        )


class Crypto:
    """
    Encrypts with the keyring's active key; decrypts with the key named
    in the envelope, or the active key when that id is unknown.
    """

    def __init__(self, keyring: Optional[Keyring] = None):
        self.keyring = keyring or Keyring()

    def encrypt(self, plaintext: str) -> str:
        key_id, key = self.keyring.get_active_key()
        nonce = os.urandom(NONCE_SIZE)
        aad = f"{VERSION}|{key_id}".encode("utf-8")
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), aad)
        envelope = Envelope(
            version=VERSION,
            key_id=key_id,
            nonce=nonce,
            tag=sealed[-TAG_SIZE:],
            ciphertext=sealed[:-TAG_SIZE],
        )
        return envelope.encode()

    def decrypt(self, envelope_text: str) -> Optional[str]:
        """Plaintext, or None if the envelope does not authenticate."""
        try:
            envelope = Envelope.parse(envelope_text)
            key = self.keyring.get_key_by_id(envelope.key_id)
            if key is None:
                _, key = self.keyring.get_active_key()
            plain = AESGCM(key).decrypt(
                envelope.nonce, envelope.ciphertext + envelope.tag, envelope.aad
            )
            return plain.decode("utf-8")
        except (CryptoError, InvalidTag, UnicodeDecodeError) as e:
            logger.debug(f"Envelope rejected: {type(e).__name__}")
            return None
