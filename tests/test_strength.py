"""Tests for password strength scoring and generation."""

import pytest

from strongbox.vault.strength import (
    DIGITS,
    LOWERCASE,
    SYMBOLS,
    UPPERCASE,
    generate_password,
    strength_band,
    validate_password_strength,
)


class TestScore:
    def test_empty_is_weak(self):
        score, message = validate_password_strength("")
        assert score == 0
        assert message == (
            "Weak: Use at least 8 characters. Add lowercase letters. "
            "Add uppercase letters. Add numbers. Add special characters."
        )

    def test_mixed_twelve_chars_is_very_strong(self):
        score, message = validate_password_strength("Aa1!aaaaaaaa")
        assert score >= 70
        assert message == "Very Strong: Good password!"

    @pytest.mark.parametrize("password,expected", [
        ("abcdefgh", 35),          # 20 length + 15 lower
        ("abcdefghijkl", 45),      # + 10 for >= 12
        ("ABC", 15),
        ("123", 15),
        ("!!!", 25),
        ("Abcdefg1", 65),
        ("Abcdefg1!", 90),
        ("Abcdefghijk1!", 100),
    ])
    def test_points(self, password, expected):
        assert validate_password_strength(password)[0] == expected

    @pytest.mark.parametrize("score,band", [
        (0, "Weak"), (39, "Weak"), (40, "Moderate"), (69, "Moderate"),
        (70, "Strong"), (89, "Strong"), (90, "Very Strong"), (100, "Very Strong"),
    ])
    def test_bands(self, score, band):
        assert strength_band(score) == band

    def test_feedback_lists_only_unmet(self):
        _, message = validate_password_strength("abcdefgh1")
        assert message == "Moderate: Add uppercase letters. Add special characters."

    def test_pure(self):
        assert validate_password_strength("Tr0ub4dor&3") == validate_password_strength("Tr0ub4dor&3")

    def test_non_ascii_counts_as_symbol(self):
        assert validate_password_strength("é")[0] == 25


class TestGenerate:
    def test_length(self):
        assert len(generate_password(32)) == 32

    def test_default_length(self):
        assert len(generate_password()) == 16

    def test_without_symbols_uses_alphanumerics(self):
        allowed = set(LOWERCASE + UPPERCASE + DIGITS)
        for _ in range(20):
            assert set(generate_password(64, include_symbols=False)) <= allowed

    def test_with_symbols_stays_in_charset(self):
        allowed = set(LOWERCASE + UPPERCASE + DIGITS + SYMBOLS)
        assert set(generate_password(256)) <= allowed

    def test_outputs_differ(self):
        assert generate_password(32) != generate_password(32)

    @pytest.mark.parametrize("length", [0, -1])
    def test_invalid_length(self, length):
        with pytest.raises(ValueError):
            generate_password(length)
