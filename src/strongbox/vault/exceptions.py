"""
Vault Exception Classes
"""


class VaultError(Exception):
    """Base exception for vault operations"""
    pass


class VaultFatalError(VaultError):
    """Unrecoverable primitive failure; never converted to a boolean result"""
    pass


class DerivationError(VaultFatalError):
    """Raised when key derivation fails or is given invalid parameters"""
    pass


class EntropyError(VaultFatalError):
    """Raised when the secure random source fails"""
    pass


class DecryptionError(VaultError):
    """Raised on wrong password or tampered/corrupted ciphertext"""
    pass


class FormatError(VaultError):
    """Raised when a serialized blob, vault file or payload is malformed"""
    pass


class VaultIOError(VaultError):
    """Raised when the vault file cannot be read or written"""
    pass
