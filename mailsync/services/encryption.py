"""
Mail credential encryption using Fernet (AES-128-CBC + HMAC-SHA256).

IMAP/SMTP secrets are stored encrypted and only decrypted in memory right
before a connection is opened.
"""
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from mailsync.config import get_settings


class CredentialEncryption:
    """Service for encrypting and decrypting stored mail secrets."""

    def __init__(self, key: Optional[str] = None):
        """
        Initialize the encryption service.

        Args:
            key: Base64-encoded Fernet key. If not provided, uses config.
        """
        settings = get_settings()
        encryption_key = key or settings.credential_encryption_key

        if not encryption_key:
            raise ValueError(
                "CREDENTIAL_ENCRYPTION_KEY is not configured. "
                "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )

        if isinstance(encryption_key, str):
            encryption_key = encryption_key.encode()

        self._fernet = Fernet(encryption_key)

    def encrypt(self, secret: str) -> str:
        """
        Encrypt a secret.

        Args:
            secret: Plain text password

        Returns:
            Fernet token as text
        """
        if not secret:
            raise ValueError("Cannot encrypt empty secret")

        return self._fernet.encrypt(secret.encode()).decode()

    def decrypt(self, encrypted: str) -> str:
        """
        Decrypt a stored secret.

        Raises:
            ValueError: If decryption fails (invalid key or corrupted data)
        """
        if not encrypted:
            raise ValueError("Cannot decrypt empty string")

        try:
            return self._fernet.decrypt(encrypted.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Failed to decrypt secret: invalid key or corrupted data") from e


def generate_encryption_key() -> str:
    """Generate a new key suitable for CREDENTIAL_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode()


_encryption_instance: Optional[CredentialEncryption] = None


def get_credential_encryption() -> CredentialEncryption:
    """Get the singleton CredentialEncryption instance."""
    global _encryption_instance
    if _encryption_instance is None:
        _encryption_instance = CredentialEncryption()
    return _encryption_instance
