"""Temporary password generation for provisioned accounts."""

import secrets

PASSWORD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*"
DEFAULT_PASSWORD_LENGTH = 12


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    """
    Generate a random temporary password.

    Each character is drawn independently and uniformly from PASSWORD_ALPHABET
    using the OS CSPRNG. The result must never be logged.
    """
    if length < 1:
        raise ValueError("Password length must be positive")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


# bcrypt only reads the first 72 bytes and rejects NUL
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 6


def validate_password(password: str) -> None:
    """Raise ValueError when a supplied password cannot be stored or used to sign in."""
    if "\x00" in password:
        raise ValueError("Password must not contain NUL characters")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
