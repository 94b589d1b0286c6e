"""Fernet sealing wrapper (AES + HMAC). Key is passed in; fail if missing. No global state."""

import base64
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.security.exceptions import EncryptionError

DEFAULT_SALT = b"timesheet_history_cursor_v1"
DEFAULT_ITERATIONS = 480000


def _derive_key(secret: str, salt: bytes = DEFAULT_SALT, iterations: int = DEFAULT_ITERATIONS) -> bytes:
    """Derive a 32-byte key for Fernet from a variable-length secret."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


class EncryptionService:
    """
    Authenticated encryption of short strings. Tokens are URL-safe ASCII.
    Any modification of a token makes decrypt() fail.
    """

    def __init__(self, key: Optional[str], *, iterations: int = DEFAULT_ITERATIONS) -> None:
        if not key or not key.strip():
            raise EncryptionError("Encryption key is required. Set CURSOR_SECRET in environment.")
        self._fernet = Fernet(_derive_key(key.strip(), iterations=iterations))

    def encrypt(self, data: str) -> str:
        """Encrypt string; return URL-safe token."""
        try:
            return self._fernet.encrypt(data.encode("utf-8")).decode("ascii")
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

    def decrypt(self, token: str) -> str:
        """Decrypt token. Raises EncryptionError if wrong key, corrupt or tampered."""
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise EncryptionError("Decryption failed: invalid or wrong key") from e
        except (UnicodeError, ValueError) as e:
            raise EncryptionError(f"Decryption failed: {e}") from e
