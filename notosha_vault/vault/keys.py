"""
Vault Key Derivation — master password → encryption key + auth hash.

PBKDF2-HMAC-SHA256 (100 000 iterations, 256-bit output) stretches the
master password with the vault salt. Two derivation schemes exist:

- ``labeled``: the PBKDF2 output is split with HKDF-SHA256 into an
  encryption key (info ``notosha-vault/encryption-key``) and an auth hash
  (info ``notosha-vault/auth-hash``). The stored hash reveals nothing
  about the key.
- ``legacy``: the raw PBKDF2 output is used for both the key and the
  hash, as older vaults did. The stored hash then *is* the key material.
  Only for reading vaults created that way.

Security Note:
    Never log passwords, key bytes or hashes.
    ``VaultKey`` is an opaque handle, but Python cannot enforce
    non-extractability: the AEAD object keeps the key in process memory.
"""
import asyncio
import hmac
import logging
from typing import NamedTuple, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import FormatError, InvalidInputError
from .codec import (
    SALT_SIZE,
    encode_text,
    from_base64,
    generate_salt,
    to_base64,
)

logger = logging.getLogger("notosha.vault")

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32  # AES-256

KDF_SCHEMES = ("labeled", "legacy")
_KEY_CONTEXT = "notosha-vault/encryption-key"
_AUTH_CONTEXT = "notosha-vault/auth-hash"

SaltLike = Union[bytes, str]


class VaultKey:
    """Opaque AES-256-GCM key handle.

    Only usable through ``encrypt`` / ``decrypt``; raw bytes are not kept
    on the handle and it refuses to be pickled or copied.
    """

    __slots__ = ("_aead",)

    def __init__(self, key_bytes: bytes):
        if len(key_bytes) != KEY_LENGTH:
            raise InvalidInputError(
                f"Key material must be {KEY_LENGTH} bytes, got {len(key_bytes)}"
            )
        self._aead = AESGCM(key_bytes)

    def encrypt(self, nonce: bytes, data: bytes) -> bytes:
        return self._aead.encrypt(nonce, data, None)

    def decrypt(self, nonce: bytes, data: bytes) -> bytes:
        return self._aead.decrypt(nonce, data, None)

    def __repr__(self) -> str:
        return "<VaultKey AES-256-GCM [redacted]>"

    def __reduce__(self):
        raise TypeError("VaultKey cannot be serialized")

    def __copy__(self):
        raise TypeError("VaultKey cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("VaultKey cannot be copied")


class DerivedSecrets(NamedTuple):
    """Result of initializing a new vault."""
    encryption_key: VaultKey
    auth_hash: str
    salt: str


def coerce_salt(salt: SaltLike) -> bytes:
    """Return raw salt bytes from bytes or base64 text.

    Raises:
        InvalidInputError: If the salt is not decodable or not 16 bytes.
    """
    if isinstance(salt, str):
        try:
            salt = from_base64(salt)
        except FormatError as err:
            raise InvalidInputError("Malformed salt encoding") from err
    if not isinstance(salt, (bytes, bytearray)):
        raise InvalidInputError(
            f"Salt must be bytes or base64 text, got {type(salt).__name__}"
        )
    if len(salt) != SALT_SIZE:
        raise InvalidInputError(
            f"Salt must be exactly {SALT_SIZE} bytes, got {len(salt)}"
        )
    return bytes(salt)


def stretch_password(master_password: str, salt: bytes) -> bytes:
    """Run PBKDF2-HMAC-SHA256 over the master password.

    CPU bound; callers on the event loop go through ``KeyDerivation``.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(encode_text(master_password))


def expand(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte subkey from ``seed`` using HKDF-SHA256.

    Args:
        seed: Stretched password bytes.
        context: Context string for domain separation.

    Returns:
        32-byte derived value.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # seed is already salted by PBKDF2
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


class KeyDerivation:
    """Password-based derivation of vault keys and verifiers.

    All public operations are coroutines; the PBKDF2 work runs in a
    worker thread so the event loop stays responsive.
    """

    def __init__(self, scheme: str = "labeled"):
        if scheme not in KDF_SCHEMES:
            raise ValueError(f"Unsupported KDF scheme: {scheme}")
        if scheme == "legacy":
            logger.warning(
                "Legacy KDF scheme selected: auth hash and encryption key share key material"
            )
        self.scheme = scheme

    def _key_bytes(self, stretched: bytes) -> bytes:
        if self.scheme == "legacy":
            return stretched
        return expand(stretched, _KEY_CONTEXT)

    def _hash_bytes(self, stretched: bytes) -> bytes:
        if self.scheme == "legacy":
            return stretched
        return expand(stretched, _AUTH_CONTEXT)

    async def _stretch(self, master_password: str, salt: bytes) -> bytes:
        return await asyncio.to_thread(stretch_password, master_password, salt)

    async def initialize(self, master_password: str) -> DerivedSecrets:
        """Create a fresh salt and derive key + auth hash from it."""
        salt = generate_salt()
        stretched = await self._stretch(master_password, salt)
        key = VaultKey(self._key_bytes(stretched))
        auth_hash = to_base64(self._hash_bytes(stretched))
        logger.debug("Derived new vault secrets (scheme=%s)", self.scheme)
        return DerivedSecrets(key, auth_hash, to_base64(salt))

    async def derive_key(self, master_password: str, salt: SaltLike) -> VaultKey:
        """Re-derive the encryption key of an existing vault."""
        raw_salt = coerce_salt(salt)
        stretched = await self._stretch(master_password, raw_salt)
        return VaultKey(self._key_bytes(stretched))

    async def hash(self, master_password: str, salt: SaltLike) -> str:
        """Return the base64 auth hash for (password, salt)."""
        raw_salt = coerce_salt(salt)
        stretched = await self._stretch(master_password, raw_salt)
        return to_base64(self._hash_bytes(stretched))

    async def verify(
        self, master_password: str, salt: SaltLike, stored_auth_hash: str
    ) -> bool:
        """Check a master password against a stored auth hash.

        Comparison is constant time over the encoded hash text.
        """
        candidate = await self.hash(master_password, salt)
        return hmac.compare_digest(
            candidate.encode("ascii"),
            str(stored_auth_hash).encode("utf-8"),
        )

    async def unlock(
        self, master_password: str, salt: SaltLike, stored_auth_hash: str
    ) -> VaultKey | None:
        """Verify and derive in a single PBKDF2 pass.

        Returns:
            The vault key, or None when the password does not match.
        """
        raw_salt = coerce_salt(salt)
        stretched = await self._stretch(master_password, raw_salt)
        candidate = to_base64(self._hash_bytes(stretched))
        if not hmac.compare_digest(
            candidate.encode("ascii"), str(stored_auth_hash).encode("utf-8")
        ):
            return None
        return VaultKey(self._key_bytes(stretched))
