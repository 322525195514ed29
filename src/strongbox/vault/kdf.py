# Vault - Key Derivation
#
# Master password + salt → 256-bit key (PBKDF2-HMAC-SHA256)
# Deterministic: same (password, salt, iterations) always yields the same key.

from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend

from .exceptions import DerivationError

KEY_LENGTH = 32                # 256 bits for AES-256
SALT_LENGTH = 16               # 128-bit salt
DEFAULT_ITERATIONS = 100_000

Password = Union[str, bytes, bytearray, memoryview]


def derive_key(password: Password, salt: bytes, iterations: int = DEFAULT_ITERATIONS) -> bytes:
    """
    Derive a 256-bit key from a master password using PBKDF2-HMAC-SHA256.

    Args:
        password: Master password (str, or its UTF-8 bytes in a mutable buffer
                  so the caller can erase it afterwards)
        salt: 16-byte random salt stored alongside the ciphertext
        iterations: PBKDF2 iteration count (>= 1)

    Returns:
        32-byte key

    Raises:
        DerivationError: Invalid parameters or a failure inside the primitive.
            A zero or partial key is never returned.
    """
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
        raise DerivationError(f"Iteration count must be a positive integer, got {iterations!r}")
    if len(salt) != SALT_LENGTH:
        raise DerivationError(f"Salt must be {SALT_LENGTH} bytes, got {len(salt)}")

    if isinstance(password, str):
        key_material = password.encode("utf-8")
    else:
        key_material = password

    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=bytes(salt),
            iterations=iterations,
            backend=default_backend(),
        )
        key = kdf.derive(key_material)
    except Exception as e:
        raise DerivationError(f"Key derivation failed: {e}") from e

    if len(key) != KEY_LENGTH:
        raise DerivationError("Key derivation returned a truncated key")
    return key
