"""Tests for email and username normalization."""

import pytest

from tipjar_common.utils.identity_utils import (
    is_valid_email,
    is_valid_username,
    normalize_email,
    normalize_username,
    username_from_email,
    validate_and_normalize_email,
)


def test_normalize_email_lowercases_and_strips() -> None:
    assert normalize_email("  Jan.Kowalski@Example.COM ") == "jan.kowalski@example.com"


def test_blank_email_normalizes_to_none() -> None:
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


@pytest.mark.parametrize("email", ["a@b.pl", "jan.kowalski+tips@example.com", "x_y@sub.domain.org"])
def test_valid_emails(email: str) -> None:
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["", "no-at-sign", "a@b", "a..b@example.com", "@example.com", "a@.com"])
def test_invalid_emails(email: str) -> None:
    assert not is_valid_email(email)


def test_validate_and_normalize_email_raises_on_invalid() -> None:
    with pytest.raises(ValueError, match="Invalid email format"):
        validate_and_normalize_email("not-an-email")
    with pytest.raises(ValueError, match="Email is required"):
        validate_and_normalize_email(" ")


def test_usernames_compare_case_insensitively() -> None:
    assert normalize_username(" MagdaArt ") == "magdaart"


@pytest.mark.parametrize(("username", "valid"), [("magda", True), ("ma", False), ("magda art", False), ("magda_art-1", True), ("a" * 31, False)])
def test_username_validation(username: str, valid: bool) -> None:
    assert is_valid_username(username) is valid


def test_username_from_email_keeps_alphanumerics() -> None:
    assert username_from_email("Jan.Kowalski+tips@example.com") == "jankowalskitips"
