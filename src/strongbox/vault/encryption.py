# Vault - Authenticated Cipher
#
# Master password → key (PBKDF2, see kdf.py)
# Payload encryption (AES-256-GCM, 16-byte random IV used as the GCM nonce)
# Fresh random salt and IV per encryption: no salt/IV reuse across blobs.
#
# The GCM tag (16 bytes) is appended to the ciphertext, so a wrong password
# and any tampering both fail decryption instead of yielding garbage.

import hmac
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .codec import EncryptedBlob
from .exceptions import DecryptionError, EntropyError
from .hygiene import erase_in_place
from .kdf import DEFAULT_ITERATIONS, SALT_LENGTH, Password, derive_key

logger = logging.getLogger(__name__)


def random_bytes(size: int) -> bytes:
    """Read ``size`` bytes from the OS CSPRNG.

    Raises:
        EntropyError: The random source is unavailable. Never falls back
            to a weaker generator.
    """
    try:
        data = os.urandom(size)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"Secure random source failed: {e}") from e
    if len(data) != size:
        raise EntropyError("Secure random source returned a short read")
    return data


class AuthenticatedCipher:
    """
    Encrypts and decrypts opaque payloads under a master password.

    Flow:
    1. Generate random 16-byte salt and 16-byte IV
    2. PBKDF2 derives a 256-bit key from password + salt
    3. AES-256-GCM encrypts the payload under key + IV
    4. Return EncryptedBlob {salt, iv, ciphertext‖tag}

    Instances hold no mutable state; one cipher can serve every call.
    """

    SALT_LENGTH = SALT_LENGTH   # 128-bit salt
    IV_LENGTH = 16              # 128-bit IV (GCM nonce)
    TAG_LENGTH = 16             # GCM authentication tag

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        self.iterations = iterations

    def _key(self, password: Password, salt: bytes) -> bytearray:
        return bytearray(derive_key(password, salt, self.iterations))

    def encrypt(self, plaintext: bytes, password: Password) -> EncryptedBlob:
        """
        Encrypt ``plaintext`` under a key derived from ``password``.

        Returns:
            A new EncryptedBlob with fresh salt and IV

        Raises:
            DerivationError: KDF failure (fatal)
            EntropyError: RNG failure (fatal)
        """
        salt = random_bytes(self.SALT_LENGTH)
        iv = random_bytes(self.IV_LENGTH)

        key = self._key(password, salt)
        try:
            ciphertext = AESGCM(key).encrypt(iv, plaintext, None)
        finally:
            erase_in_place(key)

        return EncryptedBlob(salt=salt, iv=iv, ciphertext=ciphertext)

    def decrypt(self, blob: EncryptedBlob, password: Password) -> bytes:
        """
        Decrypt ``blob`` with a key re-derived from its salt and ``password``.

        Raises:
            DecryptionError: Wrong password, tampered data, or a blob whose
                salt/IV/ciphertext sizes cannot be valid
            DerivationError: KDF failure (fatal)
        """
        if len(blob.salt) != self.SALT_LENGTH:
            raise DecryptionError(f"Invalid salt length {len(blob.salt)}")
        if len(blob.iv) != self.IV_LENGTH:
            raise DecryptionError(f"Invalid IV length {len(blob.iv)}")
        if len(blob.ciphertext) < self.TAG_LENGTH:
            raise DecryptionError("Ciphertext shorter than authentication tag")

        key = self._key(password, blob.salt)
        try:
            return AESGCM(key).decrypt(blob.iv, blob.ciphertext, None)
        except InvalidTag:
            raise DecryptionError("Decryption failed: wrong password or corrupted data") from None
        finally:
            erase_in_place(key)

    def verify_password(
        self,
        blob: EncryptedBlob,
        password: Password,
        expected_plaintext: Optional[bytes] = None,
    ) -> bool:
        """
        True iff ``blob`` decrypts under ``password``.

        Meant for the small auth token blob only, so a password can be
        checked without decrypting the whole credential store. When
        ``expected_plaintext`` is given the decrypted bytes must match it.
        """
        try:
            plaintext = self.decrypt(blob, password)
        except DecryptionError:
            return False
        if expected_plaintext is None:
            return True
        return hmac.compare_digest(plaintext, expected_plaintext)
