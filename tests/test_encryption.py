"""Tests for AuthenticatedCipher (PBKDF2 + AES-256-GCM)."""

from unittest.mock import patch

import pytest

from strongbox.vault.codec import EncryptedBlob
from strongbox.vault.encryption import AuthenticatedCipher, random_bytes
from strongbox.vault.exceptions import DecryptionError, EntropyError


@pytest.fixture
def cipher():
    return AuthenticatedCipher(iterations=1000)


# ── encrypt / decrypt ────────────────────────────────────────────────


class TestEncryptDecrypt:
    @pytest.mark.parametrize("plaintext", [
        b"",
        b"VAULT_AUTH_CHECK",
        b"\x00\xff" * 100,
        "unicode ✓ payload".encode("utf-8"),
    ])
    def test_roundtrip(self, cipher, plaintext):
        blob = cipher.encrypt(plaintext, "CorrectHorse1!")
        assert cipher.decrypt(blob, "CorrectHorse1!") == plaintext

    def test_accepts_bytearray_password_and_plaintext(self, cipher):
        blob = cipher.encrypt(bytearray(b"data"), bytearray(b"pw"))
        assert cipher.decrypt(blob, "pw") == b"data"

    def test_blob_shape(self, cipher):
        blob = cipher.encrypt(b"hello", "pw")
        assert len(blob.salt) == 16
        assert len(blob.iv) == 16
        assert len(blob.ciphertext) == len(b"hello") + AuthenticatedCipher.TAG_LENGTH

    def test_fresh_salt_and_iv_per_call(self, cipher):
        first = cipher.encrypt(b"same", "pw")
        second = cipher.encrypt(b"same", "pw")
        assert first.salt != second.salt
        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext

    def test_wrong_password_raises(self, cipher):
        blob = cipher.encrypt(b"secret", "right")
        with pytest.raises(DecryptionError):
            cipher.decrypt(blob, "wrong")

    def test_iteration_mismatch_fails(self, cipher):
        blob = cipher.encrypt(b"secret", "pw")
        with pytest.raises(DecryptionError):
            AuthenticatedCipher(iterations=1001).decrypt(blob, "pw")


class TestTampering:
    def test_flipped_ciphertext_bit_fails(self, cipher):
        blob = cipher.encrypt(b"transfer $100", "pw")
        tampered = bytearray(blob.ciphertext)
        tampered[0] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(EncryptedBlob(blob.salt, blob.iv, bytes(tampered)), "pw")

    def test_flipped_iv_fails(self, cipher):
        blob = cipher.encrypt(b"payload", "pw")
        iv = bytes([blob.iv[0] ^ 0x80]) + blob.iv[1:]
        with pytest.raises(DecryptionError):
            cipher.decrypt(EncryptedBlob(blob.salt, iv, blob.ciphertext), "pw")

    def test_truncated_ciphertext_fails(self, cipher):
        blob = cipher.encrypt(b"payload", "pw")
        with pytest.raises(DecryptionError):
            cipher.decrypt(EncryptedBlob(blob.salt, blob.iv, blob.ciphertext[:-1]), "pw")

    def test_ciphertext_shorter_than_tag(self, cipher):
        with pytest.raises(DecryptionError, match="authentication tag"):
            cipher.decrypt(EncryptedBlob(bytes(16), bytes(16), b"short"), "pw")

    @pytest.mark.parametrize("salt,iv", [(bytes(15), bytes(16)), (bytes(16), bytes(12))])
    def test_bad_field_lengths(self, cipher, salt, iv):
        with pytest.raises(DecryptionError, match="Invalid"):
            cipher.decrypt(EncryptedBlob(salt, iv, bytes(32)), "pw")


# ── verify_password ──────────────────────────────────────────────────


class TestVerifyPassword:
    def test_correct_password(self, cipher):
        token = cipher.encrypt(b"VAULT_AUTH_CHECK", "master")
        assert cipher.verify_password(token, "master") is True

    def test_wrong_password(self, cipher):
        token = cipher.encrypt(b"VAULT_AUTH_CHECK", "master")
        assert cipher.verify_password(token, "Master") is False

    def test_expected_plaintext_checked(self, cipher):
        token = cipher.encrypt(b"SOMETHING_ELSE", "master")
        assert cipher.verify_password(token, "master", b"VAULT_AUTH_CHECK") is False
        assert cipher.verify_password(token, "master", b"SOMETHING_ELSE") is True


# ── Random source ────────────────────────────────────────────────────


class TestRandomBytes:
    def test_length(self):
        assert len(random_bytes(16)) == 16

    def test_rng_failure_is_fatal(self, cipher):
        with patch("strongbox.vault.encryption.os.urandom", side_effect=NotImplementedError("no rng")):
            with pytest.raises(EntropyError):
                cipher.encrypt(b"data", "pw")

    def test_short_read_is_fatal(self):
        with patch("strongbox.vault.encryption.os.urandom", return_value=b"\x00"):
            with pytest.raises(EntropyError, match="short read"):
                random_bytes(16)
