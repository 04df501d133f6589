"""Encryption of provider API keys at rest."""
import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from harmony.core.exceptions import ConfigurationError, InvalidKeyFormatError


class KeyVault:
    """
    Fernet wrapper keyed by AI_KEY_ENCRYPTION_KEY.

    A missing secret is a configuration error. Secrets that are not already
    Fernet keys are stretched with SHA-256.
    """

    def __init__(self, secret: Optional[str]):
        raw = (secret or "").strip()
        if not raw:
            raise ConfigurationError("Missing AI_KEY_ENCRYPTION_KEY")
        try:
            self._fernet = Fernet(raw.encode("utf-8"))
        except ValueError:
            digest = hashlib.sha256(raw.encode("utf-8")).digest()
            self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, api_key: str) -> str:
        value = (api_key or "").strip()
        if not value:
            raise ValueError("api key is required")
        return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str, service_name: str = "unknown") -> str:
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise InvalidKeyFormatError(service_name) from e
