try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from crm_calendar.services.token_cipher import TokenCipherService


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    plaintext = "ya29.sensitive-access-token"

    encrypted = cipher.encrypt(plaintext)
    assert encrypted != plaintext

    decrypted = cipher.decrypt(encrypted)
    assert decrypted == plaintext


def test_token_cipher_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")


def test_token_cipher_reads_tokens_written_with_previous_secret() -> None:
    old_cipher = TokenCipherService(secret="retired-secret")
    ciphertext = old_cipher.encrypt("1//refresh-token")

    rotated = TokenCipherService(secret="current-secret", previous_secrets=["retired-secret"])
    assert rotated.decrypt(ciphertext) == "1//refresh-token"

    # New ciphertext is only readable with the current secret.
    fresh = rotated.encrypt("1//refresh-token")
    with pytest.raises(ValueError):
        old_cipher.decrypt(fresh)


def test_token_cipher_without_previous_secret_rejects_old_tokens() -> None:
    ciphertext = TokenCipherService(secret="retired-secret").encrypt("token")

    with pytest.raises(ValueError):
        TokenCipherService(secret="current-secret").decrypt(ciphertext)


def test_token_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")
