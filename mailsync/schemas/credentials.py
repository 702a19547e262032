"""
Schemas for configuring a user's mail credentials.
"""
from typing import Optional

from pydantic import BaseModel, Field


class CredentialsUpdate(BaseModel):
    """Create or replace the IMAP/SMTP credentials of a user."""

    user_id: Optional[str] = Field(None, alias="userId")
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, description="IMAP password or app password")
    imap_host: Optional[str] = Field(None, alias="imapHost")
    imap_port: Optional[int] = Field(None, alias="imapPort", ge=1, le=65535)
    imap_username: Optional[str] = Field(None, alias="imapUsername")
    imap_use_tls: bool = Field(True, alias="imapUseTls")
    smtp_host: Optional[str] = Field(None, alias="smtpHost")
    smtp_port: Optional[int] = Field(None, alias="smtpPort", ge=1, le=65535)
    smtp_username: Optional[str] = Field(None, alias="smtpUsername")
    smtp_password: Optional[str] = Field(None, alias="smtpPassword")
    smtp_use_tls: bool = Field(True, alias="smtpUseTls")

    model_config = {"populate_by_name": True}
