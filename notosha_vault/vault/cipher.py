"""
Vault Cipher Engine — authenticated encryption of plaintext records.

Format:
    plaintext = orjson(record, sorted keys, None fields omitted)
    ciphertext = base64(AES-256-GCM(plaintext) + tag 16B)
    nonce = base64(random 12B), fresh on every call

Security Note:
    Never log plaintext or ciphertext values. Nonces are random 96-bit and
    are never reused deliberately; a collision is negligible under normal
    usage.
"""
import asyncio
import logging
from typing import Mapping, NamedTuple

import orjson
from cryptography.exceptions import InvalidTag
from pydantic import BaseModel, ValidationError

from ..exceptions import DecryptionError, FormatError
from ..models import EncryptedPayload, PlaintextRecord
from .codec import NONCE_SIZE, from_base64, generate_nonce, to_base64
from .keys import VaultKey

logger = logging.getLogger("notosha.vault")

TAG_SIZE = 16


class BatchResult(BaseModel):
    """Outcome of a batch decryption; failed ids are skipped, not raised."""

    records: dict[str, PlaintextRecord] = {}
    failed: list[str] = []


class CipherInput(NamedTuple):
    ciphertext: str
    nonce: str


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_record(record: PlaintextRecord) -> bytes:
    """Canonical byte encoding of a record."""
    return orjson.dumps(
        record.model_dump(exclude_none=True),
        option=orjson.OPT_SORT_KEYS,
    )


def deserialize_record(data: bytes) -> PlaintextRecord:
    return PlaintextRecord.model_validate(orjson.loads(data))


# ---------------------------------------------------------------------------
# Single record
# ---------------------------------------------------------------------------

def _encrypt_sync(record: PlaintextRecord, key: VaultKey) -> EncryptedPayload:
    nonce = generate_nonce()
    ct = key.encrypt(nonce, serialize_record(record))
    return EncryptedPayload(ciphertext=to_base64(ct), nonce=to_base64(nonce))


def _decrypt_sync(ciphertext: str, nonce: str, key: VaultKey) -> PlaintextRecord:
    try:
        nonce_bytes = from_base64(nonce)
        ct = from_base64(ciphertext)
    except FormatError as err:
        raise DecryptionError("Malformed ciphertext or nonce encoding") from err
    if len(nonce_bytes) != NONCE_SIZE:
        raise DecryptionError(
            f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce_bytes)}"
        )
    if len(ct) < TAG_SIZE:
        raise DecryptionError(
            f"Ciphertext too short: {len(ct)} bytes (minimum {TAG_SIZE})"
        )
    try:
        plaintext = key.decrypt(nonce_bytes, ct)
    except InvalidTag as err:
        raise DecryptionError() from err
    try:
        return deserialize_record(plaintext)
    except (orjson.JSONDecodeError, ValidationError) as err:
        raise DecryptionError("Decrypted payload is not a valid record") from err


async def encrypt(record: PlaintextRecord, key: VaultKey) -> EncryptedPayload:
    """Encrypt a record under ``key`` with a brand-new nonce.

    Non-deterministic: the same record and key give a different
    ciphertext on every call.
    """
    return _encrypt_sync(record, key)


async def decrypt(ciphertext: str, nonce: str, key: VaultKey) -> PlaintextRecord:
    """Decrypt and authenticate a stored record.

    Raises:
        DecryptionError: On tag mismatch, wrong key or corrupted input.
    """
    return _decrypt_sync(ciphertext, nonce, key)


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

async def encrypt_batch(
    records: Mapping[str, PlaintextRecord], key: VaultKey
) -> dict[str, EncryptedPayload]:
    """Encrypt many records concurrently; each gets its own nonce."""
    ids = list(records)
    payloads = await asyncio.gather(*(encrypt(records[i], key) for i in ids))
    return dict(zip(ids, payloads))


async def decrypt_batch(
    items: Mapping[str, CipherInput | tuple[str, str]], key: VaultKey
) -> BatchResult:
    """Decrypt many records, skipping the ones that fail.

    A corrupt record is logged and reported in ``failed``; it never
    aborts the rest of the batch.
    """
    ids = list(items)
    outcomes = await asyncio.gather(
        *(decrypt(items[i][0], items[i][1], key) for i in ids),
        return_exceptions=True,
    )
    result = BatchResult()
    for record_id, outcome in zip(ids, outcomes):
        if isinstance(outcome, DecryptionError):
            logger.error("Skipping unreadable record id=%s: %s", record_id, outcome)
            result.failed.append(record_id)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.records[record_id] = outcome
    return result
