"""
Vault Configuration — validated runtime settings.

Reads optional overrides from environment variables:
    NOTOSHA_AUTO_LOCK_TIMEOUT = <seconds>
    NOTOSHA_AUTO_LOCK_ENABLED = true|false
    NOTOSHA_STALE_AFTER_DAYS = <days>
    NOTOSHA_KDF_SCHEME = labeled|legacy

Cryptographic parameters (iterations, key, salt and nonce sizes) are
fixed constants in ``keys`` and ``codec`` and are not configurable.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

from .keys import KDF_SCHEMES
from .autolock import AUTO_LOCK_TIMEOUT

logger = logging.getLogger("notosha.vault")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    auto_lock_timeout: float = Field(default=AUTO_LOCK_TIMEOUT, gt=0)
    auto_lock_enabled: bool = True
    stale_after_days: int = Field(default=180, ge=1)
    min_master_password_length: int = Field(default=8, ge=1)
    kdf_scheme: str = Field(default="labeled")

    @field_validator("kdf_scheme")
    @classmethod
    def validate_kdf_scheme(cls, v: str) -> str:
        """Validate the key derivation scheme is supported."""
        v = v.lower()
        if v not in KDF_SCHEMES:
            raise ValueError(f"Unsupported KDF scheme: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig from environment, falling back to defaults.

        Returns:
            Populated VaultConfig instance.
        """
        values: dict = {
            "auto_lock_enabled": _env_bool("NOTOSHA_AUTO_LOCK_ENABLED", True),
        }
        timeout = os.environ.get("NOTOSHA_AUTO_LOCK_TIMEOUT")
        if timeout is not None:
            values["auto_lock_timeout"] = float(timeout)
        stale = os.environ.get("NOTOSHA_STALE_AFTER_DAYS")
        if stale is not None:
            values["stale_after_days"] = int(stale)
        scheme = os.environ.get("NOTOSHA_KDF_SCHEME")
        if scheme is not None:
            values["kdf_scheme"] = scheme
        config = cls(**values)
        logger.debug(
            "Loaded vault config: auto_lock=%s timeout=%.0fs kdf=%s",
            config.auto_lock_enabled, config.auto_lock_timeout, config.kdf_scheme,
        )
        return config
