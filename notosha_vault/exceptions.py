"""
Vault exceptions.

Wrong master passwords are not exceptions: ``unlock`` and ``verify``
report them as ``False``. Everything here is an exceptional failure.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class InvalidInputError(VaultError):
    """Malformed salt, key material or record shape."""


class FormatError(InvalidInputError):
    """Malformed base64 or UTF-8 text at the codec boundary."""


class VaultLockedError(VaultError):
    """A crypto operation was attempted while the vault is locked."""

    def __init__(self, message: str = "Vault is locked"):
        super().__init__(message)


class DecryptionError(VaultError):
    """Ciphertext could not be authenticated or decoded.

    Deterministic: retrying with the same inputs fails again.
    """

    def __init__(self, message: str = "Decryption failed. Invalid key or corrupted data."):
        super().__init__(message)


class RecordNotFoundError(VaultError, LookupError):
    """No record with this id exists in the current vault."""
