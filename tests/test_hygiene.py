"""Tests for best-effort secret zeroing."""

import pytest

from strongbox.vault.exceptions import FormatError
from strongbox.vault.hygiene import erase_in_place, scrubbed, secret_bytes


class TestEraseInPlace:
    def test_bytearray_zeroed(self):
        buf = bytearray(b"master-password")
        erase_in_place(buf)
        assert buf == bytearray(len(b"master-password"))

    def test_length_preserved(self):
        buf = bytearray(b"abc")
        erase_in_place(buf)
        assert len(buf) == 3

    def test_writable_memoryview(self):
        backing = bytearray(b"secret")
        erase_in_place(memoryview(backing)[1:4])
        assert backing == bytearray(b"s\x00\x00\x00et")

    def test_empty_buffer(self):
        buf = bytearray()
        erase_in_place(buf)
        assert buf == bytearray()

    @pytest.mark.parametrize("immutable", [b"bytes", "text", memoryview(b"ro")])
    def test_immutable_rejected(self, immutable):
        with pytest.raises(TypeError):
            erase_in_place(immutable)

    def test_buffer_still_resizable_after_erase(self):
        buf = bytearray(b"abc")
        erase_in_place(buf)
        buf.clear()
        assert buf == bytearray()


class TestScrubbed:
    def test_zeroes_on_exit(self):
        with scrubbed(secret_bytes("pw")) as buf:
            assert buf == bytearray(b"pw")
        assert buf == bytearray(2)

    def test_zeroes_on_exception(self):
        buf = secret_bytes("pw")
        with pytest.raises(RuntimeError):
            with scrubbed(buf):
                raise RuntimeError("boom")
        assert buf == bytearray(2)


class TestSecretBytes:
    def test_str_encoded_utf8(self):
        assert secret_bytes("é") == bytearray("é".encode("utf-8"))

    def test_copy_is_independent(self):
        source = bytearray(b"abc")
        copy = secret_bytes(source)
        erase_in_place(copy)
        assert source == bytearray(b"abc")

    def test_lone_surrogate_is_format_error(self):
        with pytest.raises(FormatError):
            secret_bytes("pw\udcff")
