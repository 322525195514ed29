# Vault - Password Strength & Generation
#
# Additive rubric (max 100):
#   +20 length >= 8, +10 length >= 12, +15 lowercase, +15 uppercase,
#   +15 digit, +25 symbol
# Bands: <40 Weak, <70 Moderate, <90 Strong, else Very Strong

import re
import secrets
import string
from typing import Tuple

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

DEFAULT_GENERATED_LENGTH = 16

# (pattern, points, feedback when missing)
_CLASS_RULES = (
    (re.compile(r"[a-z]"), 15, "Add lowercase letters."),
    (re.compile(r"[A-Z]"), 15, "Add uppercase letters."),
    (re.compile(r"[0-9]"), 15, "Add numbers."),
    (re.compile(r"[^a-zA-Z0-9]"), 25, "Add special characters."),
)


def strength_band(score: int) -> str:
    if score < 40:
        return "Weak"
    if score < 70:
        return "Moderate"
    if score < 90:
        return "Strong"
    return "Very Strong"


def validate_password_strength(password: str) -> Tuple[int, str]:
    """
    Score a password 0..100.

    Returns:
        (score, "<Band>: <feedback>") where feedback lists every unmet
        criterion, or "Good password!" if none.
    """
    score = 0
    feedback = []

    if len(password) >= 8:
        score += 20
    else:
        feedback.append("Use at least 8 characters.")

    if len(password) >= 12:
        score += 10

    for pattern, points, hint in _CLASS_RULES:
        if pattern.search(password):
            score += points
        else:
            feedback.append(hint)

    message = " ".join(feedback) if feedback else "Good password!"
    return score, f"{strength_band(score)}: {message}"


def generate_password(length: int = DEFAULT_GENERATED_LENGTH, include_symbols: bool = True) -> str:
    """Uniformly random password from letters, digits and optionally symbols."""
    if length < 1:
        raise ValueError(f"Password length must be at least 1, got {length}")

    charset = LOWERCASE + UPPERCASE + DIGITS
    if include_symbols:
        charset += SYMBOLS
    return "".join(secrets.choice(charset) for _ in range(length))
