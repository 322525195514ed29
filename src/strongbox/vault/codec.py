# Vault - Blob Codec
#
# Flat binary wire format for EncryptedBlob, one record per blob:
#
#   [salt_len: uint32 LE][salt][iv_len: uint32 LE][iv][ct_len: uint32 LE][ciphertext]
#
# The codec knows nothing about encryption: ciphertext is an opaque byte
# string, and salt/IV lengths are not enforced here (the cipher checks them).
#
# Vault file = auth token blob ‖ credentials blob, each a full record above.

import struct
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .exceptions import FormatError

_LENGTH = struct.Struct("<I")
LENGTH_PREFIX_SIZE = _LENGTH.size
MIN_BLOB_SIZE = 3 * LENGTH_PREFIX_SIZE    # three zero-length fields
VAULT_FILE_BLOBS = 2                       # auth token, credentials


@dataclass(frozen=True)
class EncryptedBlob:
    """Salt, IV and ciphertext bundle produced by one encryption."""
    salt: bytes
    iv: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return (
            f"EncryptedBlob(salt={self.salt.hex()}, iv={self.iv.hex()}, "
            f"ciphertext=<{len(self.ciphertext)} bytes>)"
        )


def serialize(blob: EncryptedBlob) -> bytes:
    """Encode one blob as three length-prefixed fields."""
    parts = []
    for field_bytes in (blob.salt, blob.iv, blob.ciphertext):
        parts.append(_LENGTH.pack(len(field_bytes)))
        parts.append(bytes(field_bytes))
    return b"".join(parts)


def read_blob(data: bytes, offset: int = 0) -> Tuple[EncryptedBlob, int]:
    """Decode one blob starting at ``offset``.

    Returns:
        (blob, offset just past the blob)

    Raises:
        FormatError: If fewer than 12 bytes remain, or a length prefix
            points past the end of ``data``.
    """
    if len(data) - offset < MIN_BLOB_SIZE:
        raise FormatError(
            f"Encrypted blob needs at least {MIN_BLOB_SIZE} bytes, "
            f"{max(len(data) - offset, 0)} available at offset {offset}"
        )

    fields = []
    for name in ("salt", "iv", "ciphertext"):
        if offset + LENGTH_PREFIX_SIZE > len(data):
            raise FormatError(f"Truncated {name} length prefix at offset {offset}")
        (length,) = _LENGTH.unpack_from(data, offset)
        offset += LENGTH_PREFIX_SIZE
        if offset + length > len(data):
            raise FormatError(
                f"Declared {name} length {length} exceeds remaining {len(data) - offset} bytes"
            )
        fields.append(bytes(data[offset:offset + length]))
        offset += length

    return EncryptedBlob(*fields), offset


def deserialize(data: bytes) -> EncryptedBlob:
    """Decode exactly one blob; trailing bytes are a FormatError."""
    blob, end = read_blob(data)
    if end != len(data):
        raise FormatError(f"{len(data) - end} unexpected trailing bytes after blob")
    return blob


def serialize_many(blobs: Sequence[EncryptedBlob]) -> bytes:
    """Concatenate several serialized blobs."""
    return b"".join(serialize(blob) for blob in blobs)


def deserialize_many(data: bytes, count: int) -> List[EncryptedBlob]:
    """Decode exactly ``count`` consecutive blobs filling all of ``data``."""
    blobs = []
    offset = 0
    for _ in range(count):
        blob, offset = read_blob(data, offset)
        blobs.append(blob)
    if offset != len(data):
        raise FormatError(f"{len(data) - offset} unexpected trailing bytes after {count} blobs")
    return blobs


def encode_vault_file(auth_token: EncryptedBlob, credentials: EncryptedBlob) -> bytes:
    """Lay out the on-disk vault: auth token first, then credentials."""
    return serialize_many([auth_token, credentials])


def decode_vault_file(data: bytes) -> Tuple[EncryptedBlob, EncryptedBlob]:
    """Split vault file bytes into (auth_token, credentials)."""
    auth_token, credentials = deserialize_many(data, VAULT_FILE_BLOBS)
    return auth_token, credentials
