from __future__ import annotations

from typing import Any

import httpx

from app.auth.identity import UserIdentity
from app.auth.providers import GITHUB, GOOGLE
from app.core.config import settings

GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


class ProviderProfileError(Exception):
    """Base exception for provider profile lookups."""


class UnsupportedProviderError(ProviderProfileError):
    """Raised when a profile is requested for a provider we don't federate with."""


class ProviderRequestError(ProviderProfileError):
    """Raised when the provider rejects the access token or the call fails."""


def _get_json(url: str, access_token: str) -> Any:
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }
    try:
        response = httpx.get(url, headers=headers, timeout=settings.OAUTH_HTTP_TIMEOUT)
    except httpx.HTTPError as exc:
        raise ProviderRequestError("Unable to reach identity provider.") from exc

    if response.status_code != 200:
        raise ProviderRequestError(f"Identity provider returned HTTP {response.status_code}.")

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderRequestError("Invalid identity provider response.") from exc


def _get_profile(url: str, access_token: str) -> dict:
    profile = _get_json(url, access_token)
    if not isinstance(profile, dict):
        raise ProviderRequestError("Identity provider returned an unexpected profile.")
    return profile


def _google_identity(access_token: str) -> UserIdentity:
    profile = _get_profile(GOOGLE_USERINFO_URL, access_token)
    return UserIdentity.from_provider_profile(
        GOOGLE,
        email=profile.get("email"),
        name=profile.get("name"),
        picture=profile.get("picture"),
        external_subject=profile.get("sub"),
        raw_profile=profile,
    )


def _github_primary_email(access_token: str) -> str | None:
    emails = _get_json(GITHUB_EMAILS_URL, access_token)
    if not isinstance(emails, list):
        return None
    for entry in emails:
        if isinstance(entry, dict) and entry.get("primary") and entry.get("verified"):
            return entry.get("email")
    return None


def _github_identity(access_token: str) -> UserIdentity:
    profile = _get_profile(GITHUB_USER_URL, access_token)
    # GitHub omits the email when the user keeps it private
    email = profile.get("email") or _github_primary_email(access_token)
    return UserIdentity.from_provider_profile(
        GITHUB,
        email=email,
        name=profile.get("name") or profile.get("login"),
        picture=profile.get("avatar_url"),
        external_subject=profile.get("id"),
        raw_profile=profile,
    )


_FETCHERS = {
    GOOGLE: _google_identity,
    GITHUB: _github_identity,
}


def fetch_provider_identity(provider: str, access_token: str) -> UserIdentity:
    """
    Exchange a provider access token for a normalized identity.

    Raises:
        UnsupportedProviderError: if the provider isn't google/github.
        ProviderRequestError: if the call fails or no email is available.
    """
    fetcher = _FETCHERS.get((provider or "").strip().lower())
    if fetcher is None:
        raise UnsupportedProviderError(f"Unsupported provider: {provider}")

    token = (access_token or "").strip()
    if not token:
        raise ProviderRequestError("Missing provider access token.")

    identity = fetcher(token)
    if not identity.email:
        raise ProviderRequestError("Identity provider did not return an email address.")
    return identity
