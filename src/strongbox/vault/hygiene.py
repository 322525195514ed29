# Vault - Secret Hygiene
#
# Best-effort zeroing of secret buffers.
#
# Limitation: CPython `str` and `bytes` are immutable, so only mutable
# buffers (bytearray, writable memoryview) can be scrubbed. Copies made by
# the interpreter, the cryptography backend, the OS pager or earlier
# allocations may still hold the secret. This narrows the exposure window,
# it does not guarantee secrecy.

from contextlib import contextmanager
from typing import Iterator, Union

from .exceptions import FormatError

SecretBuffer = Union[bytearray, memoryview]


def erase_in_place(secret: SecretBuffer) -> None:
    """Overwrite every byte of ``secret`` with zero.

    Raises:
        TypeError: If ``secret`` is not a mutable buffer.
    """
    if isinstance(secret, memoryview):
        if secret.readonly:
            raise TypeError("Cannot erase a read-only memoryview")
        view = secret.cast("B")
    elif isinstance(secret, bytearray):
        view = memoryview(secret)
    else:
        raise TypeError(
            f"erase_in_place() needs a bytearray or writable memoryview, got {type(secret).__name__}"
        )
    with view:
        view[:] = bytes(len(view))


def secret_bytes(value: Union[str, bytes, bytearray]) -> bytearray:
    """Copy a secret into a fresh bytearray that can later be erased.

    Raises:
        FormatError: If a ``str`` value cannot be encoded as UTF-8
            (lone surrogates from a surrogateescape terminal).
    """
    if isinstance(value, str):
        try:
            return bytearray(value.encode("utf-8"))
        except UnicodeEncodeError:
            raise FormatError("Secret is not encodable as UTF-8") from None
    return bytearray(value)


@contextmanager
def scrubbed(secret: SecretBuffer) -> Iterator[SecretBuffer]:
    """Yield ``secret`` and zero it on exit, even if the body raises.

    Usage::

        with scrubbed(secret_bytes(password)) as buf:
            key = derive_key(buf, salt)
    """
    try:
        yield secret
    finally:
        erase_in_place(secret)
