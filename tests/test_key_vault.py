import pytest
from cryptography.fernet import Fernet

from harmony.core.exceptions import ConfigurationError, InvalidKeyFormatError
from harmony.services.key_vault import KeyVault


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigurationError):
        KeyVault(None)
    with pytest.raises(ConfigurationError):
        KeyVault("   ")


def test_round_trip_with_passphrase():
    vault = KeyVault("not-a-fernet-key")
    token = vault.encrypt("abc123abc123abc123abc123")
    assert token != "abc123abc123abc123abc123"
    assert vault.decrypt(token) == "abc123abc123abc123abc123"


def test_accepts_native_fernet_key():
    key = Fernet.generate_key().decode()
    token = KeyVault(key).encrypt("value")
    assert Fernet(key.encode()).decrypt(token.encode()) == b"value"


def test_same_passphrase_decrypts_after_restart():
    token = KeyVault("shared-secret").encrypt("value")
    assert KeyVault("shared-secret").decrypt(token) == "value"


def test_wrong_secret_rejected():
    token = KeyVault("secret-one").encrypt("value")
    with pytest.raises(InvalidKeyFormatError) as exc_info:
        KeyVault("secret-two").decrypt(token, "gemini")
    assert exc_info.value.service_name == "gemini"


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        KeyVault("secret").encrypt("  ")
