"""
Vault Codec — byte/text conversions and secure randomness.

All functions are pure apart from ``random_bytes`` which draws from the
OS CSPRNG through ``secrets``.
"""
import base64
import binascii
import secrets

from ..exceptions import FormatError, InvalidInputError

SALT_SIZE = 16
NONCE_SIZE = 12  # 96-bit nonce


def to_base64(data: bytes) -> str:
    """Encode raw bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def from_base64(text: str) -> bytes:
    """Decode standard base64 text.

    Raises:
        FormatError: If ``text`` is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        raise FormatError("Malformed base64 input") from err


def encode_text(text: str) -> bytes:
    return text.encode("utf-8")


def decode_text(data: bytes) -> str:
    """Decode UTF-8 bytes.

    Raises:
        FormatError: If ``data`` is not valid UTF-8.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise FormatError("Malformed UTF-8 input") from err


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the CSPRNG."""
    if size <= 0:
        raise InvalidInputError(f"random_bytes size must be positive, got {size}")
    return secrets.token_bytes(size)


def generate_salt() -> bytes:
    return random_bytes(SALT_SIZE)


def generate_nonce() -> bytes:
    return random_bytes(NONCE_SIZE)
