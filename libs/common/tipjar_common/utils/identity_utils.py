"""Email and username normalization utilities."""

import re

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9._+%-]*[a-zA-Z0-9])?@[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?\.[a-zA-Z]{2,}$")
_USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]{3,30}$")


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    if not email or ".." in email:
        return False
    return _EMAIL_PATTERN.match(email) is not None


def normalize_email(email: str | None) -> str | None:
    """Normalize email address (lowercase, strip whitespace). Blank values become None."""
    if email is None:
        return None
    normalized = email.strip().lower()
    return normalized or None


def validate_and_normalize_email(email: str) -> str:
    """Validate and normalize email address.

    Raises:
        ValueError: If email is invalid
    """
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValueError("Email is required")
    if not is_valid_email(normalized_email):
        raise ValueError("Invalid email format")
    return normalized_email


def normalize_username(username: str) -> str:
    return username.strip().lower()


def is_valid_username(username: str) -> bool:
    return _USERNAME_PATTERN.match(username) is not None


def username_from_email(email: str) -> str:
    """Derive a username base from the local part of an email address, keeping only [a-z0-9]."""
    local_part = email.split("@", 1)[0].lower()
    return re.sub(r"[^a-z0-9]", "", local_part)
