"""
Mail credential lookup and storage.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mailsync.models.email_credentials import EmailCredentials
from mailsync.services.encryption import CredentialEncryption, get_credential_encryption
from mailsync.services.exceptions import CredentialsDecryptionError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

# Server presets for well-known providers, keyed by address domain
PROVIDER_PRESETS: Dict[str, Dict[str, object]] = {
    "gmail.com": {
        "imap_host": "imap.gmail.com",
        "imap_port": 993,
        "smtp_host": "smtp.gmail.com",
        "smtp_port": 465,
    },
    "outlook.com": {
        "imap_host": "outlook.office365.com",
        "imap_port": 993,
        "smtp_host": "smtp.office365.com",
        "smtp_port": 587,
    },
    "yahoo.com": {
        "imap_host": "imap.mail.yahoo.com",
        "imap_port": 993,
        "smtp_host": "smtp.mail.yahoo.com",
        "smtp_port": 465,
    },
    "icloud.com": {
        "imap_host": "imap.mail.me.com",
        "imap_port": 993,
        "smtp_host": "smtp.mail.me.com",
        "smtp_port": 587,
    },
    "aol.com": {
        "imap_host": "imap.aol.com",
        "imap_port": 993,
        "smtp_host": "smtp.aol.com",
        "smtp_port": 465,
    },
}


@dataclass
class ImapSettings:
    """Decrypted connection parameters for one IMAP account."""
    host: str
    port: int
    username: str
    password: str = field(repr=False)
    use_tls: bool = True
    email_address: str = ""


class CredentialService:
    """Reads and writes per-user mail credentials."""

    def __init__(self, db: Session, encryption: Optional[CredentialEncryption] = None):
        self.db = db
        self._encryption = encryption

    @property
    def encryption(self) -> CredentialEncryption:
        if self._encryption is None:
            self._encryption = get_credential_encryption()
        return self._encryption

    def get_credentials(self, user_id: uuid.UUID) -> EmailCredentials:
        """
        Load the active credentials of a user.

        Raises:
            CredentialsNotFoundError: If none are stored or they are inactive
        """
        credentials = self.db.execute(
            select(EmailCredentials).where(
                EmailCredentials.user_id == user_id,
                EmailCredentials.is_active == True,  # noqa: E712
            )
        ).scalar_one_or_none()

        if credentials is None:
            raise CredentialsNotFoundError(f"No email credentials found for user {user_id}")
        return credentials

    def get_imap_settings(self, credentials: EmailCredentials) -> ImapSettings:
        """
        Decrypt the IMAP secret into connection parameters.

        Raises:
            CredentialsDecryptionError: If the stored secret cannot be decrypted
        """
        try:
            password = self.encryption.decrypt(credentials.imap_password_encrypted)
        except ValueError as e:
            logger.error(f"Cannot decrypt IMAP secret of {credentials.email_address}: {e}")
            raise CredentialsDecryptionError(
                f"Stored secret of {credentials.email_address} cannot be decrypted"
            ) from e

        return ImapSettings(
            host=credentials.imap_host,
            port=credentials.imap_port,
            username=credentials.imap_username,
            password=password,
            use_tls=credentials.imap_use_tls,
            email_address=credentials.email_address,
        )

    def upsert_credentials(
        self,
        user_id: uuid.UUID,
        email_address: str,
        imap_password: str,
        imap_username: Optional[str] = None,
        imap_host: Optional[str] = None,
        imap_port: Optional[int] = None,
        imap_use_tls: bool = True,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
    ) -> EmailCredentials:
        """
        Create or replace the credentials of a user.

        Hosts and ports left empty are filled from PROVIDER_PRESETS when the
        address belongs to a known provider.

        Raises:
            ValueError: If no IMAP host is given and none can be inferred
        """
        domain = email_address.rsplit("@", 1)[-1].lower()
        preset = PROVIDER_PRESETS.get(domain, {})

        imap_host = imap_host or preset.get("imap_host")
        if not imap_host:
            raise ValueError(f"IMAP host is required for {domain}")

        credentials = self.db.execute(
            select(EmailCredentials).where(EmailCredentials.user_id == user_id)
        ).scalar_one_or_none()
        if credentials is None:
            credentials = EmailCredentials(user_id=user_id)
            self.db.add(credentials)

        credentials.email_address = email_address
        credentials.imap_host = imap_host
        credentials.imap_port = imap_port or preset.get("imap_port") or 993
        credentials.imap_username = imap_username or email_address
        credentials.imap_password_encrypted = self.encryption.encrypt(imap_password)
        credentials.imap_use_tls = imap_use_tls
        credentials.smtp_host = smtp_host or preset.get("smtp_host")
        credentials.smtp_port = smtp_port or preset.get("smtp_port")
        credentials.smtp_username = smtp_username or credentials.imap_username
        credentials.smtp_password_encrypted = (
            self.encryption.encrypt(smtp_password) if smtp_password else None
        )
        credentials.smtp_use_tls = smtp_use_tls
        credentials.is_active = True

        self.db.commit()
        self.db.refresh(credentials)
        logger.info(f"Saved email credentials for user {user_id} ({credentials.imap_host})")
        return credentials
