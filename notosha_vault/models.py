"""
Vault data models.

``PlaintextRecord`` is the logical secret and only ever lives in memory.
``EncryptedRecord`` and ``VaultIdentity`` are what storage sees.
"""
import uuid
from enum import Enum
from typing import Optional
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecretCategory(str, Enum):
    LOGIN = "login"
    CREDIT_CARD = "credit-card"
    API_KEY = "api-key"
    NOTE = "note"
    OTHER = "other"


class PlaintextRecord(BaseModel):
    """Decrypted secret payload. Never persisted as-is."""

    name: str
    username: Optional[str] = None
    password: str
    url: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __repr__(self) -> str:
        return f"<PlaintextRecord name={self.name!r} [password redacted]>"

    __str__ = __repr__


class EncryptedPayload(BaseModel):
    """Base64 ciphertext + nonce pair produced by one encryption."""

    ciphertext: str
    nonce: str

    model_config = ConfigDict(frozen=True)


class EncryptedRecord(BaseModel):
    """Persisted unit of a vault.

    ``ciphertext`` and ``nonce`` must be stored byte-for-byte.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    vault_id: str
    ciphertext: str
    nonce: str
    category: SecretCategory = SecretCategory.LOGIN
    favorite: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def payload(self) -> EncryptedPayload:
        return EncryptedPayload(ciphertext=self.ciphertext, nonce=self.nonce)


class VaultIdentity(BaseModel):
    """Durable, non-secret account record."""

    email: str
    salt: str
    auth_hash: str
    vault_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(default_factory=utcnow)
    last_unlock: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are case-insensitive identity keys."""
        return v.strip().lower()


class Secret(BaseModel):
    """Decrypted view of an ``EncryptedRecord``."""

    id: str
    record: PlaintextRecord
    category: SecretCategory = SecretCategory.LOGIN
    favorite: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def password(self) -> str:
        return self.record.password
