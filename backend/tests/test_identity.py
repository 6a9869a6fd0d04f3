# tests/test_identity.py
"""
Unit tests for the UserIdentity model.

These tests verify:
- Mapping from a stored user record
- Normalization of provider profiles
- Identity debug output safety

Tests do NOT require database access.
"""
from __future__ import annotations

import pytest

from app.auth.identity import UserIdentity, normalize_email
from app.models.user import User


# ---------------------------------------------------------------------------
# Tests: normalize_email()
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Mixed.Case@Example.COM ", "mixed.case@example.com"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


# ---------------------------------------------------------------------------
# Tests: UserIdentity.from_user()
# ---------------------------------------------------------------------------


def test_from_user_maps_record():
    """Test identity built from a user row."""
    user = User(
        id=7,
        email="A@X.com",
        name="A",
        image="https://img/a.png",
        provider="google",
        role="admin",
    )
    identity = UserIdentity.from_user(user)

    assert identity.user_id == "7"
    assert identity.email == "a@x.com"
    assert identity.provider == "google"
    assert identity.picture == "https://img/a.png"
    assert identity.role == "admin"


def test_from_user_defaults_provider_and_role():
    identity = UserIdentity.from_user(User(id=1, email="a@x.com"))
    assert identity.provider == "credentials"
    assert identity.role == "user"


# ---------------------------------------------------------------------------
# Tests: UserIdentity.from_provider_profile()
# ---------------------------------------------------------------------------


def test_provider_profile_identity():
    """Test provider identity creation and normalization."""
    identity = UserIdentity.from_provider_profile(
        "github",
        email="Octo@GitHub.COM",
        name="  Octo Cat  ",
        picture="",
        external_subject=12345,
        raw_profile={"id": 12345, "login": "octo"},
    )

    assert identity.provider == "github"
    assert identity.email == "octo@github.com"
    assert identity.name == "Octo Cat"
    assert identity.picture is None
    assert identity.external_subject == "12345"
    assert identity.user_id is None
    assert identity.raw_profile == {"id": 12345, "login": "octo"}


def test_identity_is_immutable():
    identity = UserIdentity(email="a@x.com")
    with pytest.raises(AttributeError):
        identity.email = "b@x.com"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Tests: to_debug_dict()
# ---------------------------------------------------------------------------


def test_debug_dict_excludes_raw_profile():
    """Test that debug output never includes the provider payload."""
    identity = UserIdentity.from_provider_profile(
        "google",
        email="a@x.com",
        external_subject="sub-1",
        raw_profile={"secret_field": "should_not_appear"},
    )
    debug = identity.to_debug_dict()

    assert debug == {
        "user_id": None,
        "provider": "google",
        "external_subject": "sub-1",
        "email": "a@x.com",
        "role": "user",
    }
    assert "should_not_appear" not in str(debug)
