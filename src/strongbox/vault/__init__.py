# Strongbox - Vault Module
#
# Encrypted single-file credential store.
# Master password → PBKDF2-HMAC-SHA256 key → AES-256-GCM,
# fresh salt and IV for every blob, auth token checked before unlock.

from .codec import EncryptedBlob, deserialize, serialize
from .credential_store import Credential, CredentialStore
from .encryption import AuthenticatedCipher
from .exceptions import (
    DecryptionError,
    DerivationError,
    EntropyError,
    FormatError,
    VaultError,
    VaultFatalError,
    VaultIOError,
)
from .hygiene import erase_in_place
from .kdf import derive_key
from .strength import generate_password, validate_password_strength
from .vault_manager import VaultController, VaultState

__all__ = [
    "AuthenticatedCipher",
    "Credential",
    "CredentialStore",
    "DecryptionError",
    "DerivationError",
    "EncryptedBlob",
    "EntropyError",
    "FormatError",
    "VaultController",
    "VaultError",
    "VaultFatalError",
    "VaultIOError",
    "VaultState",
    "derive_key",
    "deserialize",
    "erase_in_place",
    "generate_password",
    "serialize",
    "validate_password_strength",
]
