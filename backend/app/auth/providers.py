# app/auth/providers.py
"""
Identity providers and the allowed provider transitions for a user record.

A user created through the password form is tagged "credentials". When the
same email later signs in through an external provider, the record is
upgraded to that provider. The reverse never happens, and one external
provider never replaces another.
"""
from __future__ import annotations

CREDENTIALS = "credentials"
GOOGLE = "google"
GITHUB = "github"

PROVIDERS = frozenset([CREDENTIALS, GOOGLE, GITHUB])
EXTERNAL_PROVIDERS = frozenset([GOOGLE, GITHUB])

# (current provider, provider now signing in) -> provider to store
PROVIDER_TRANSITIONS: dict[tuple[str, str], str] = {
    (CREDENTIALS, GOOGLE): GOOGLE,
    (CREDENTIALS, GITHUB): GITHUB,
}


def is_external(provider: str | None) -> bool:
    return provider in EXTERNAL_PROVIDERS


def next_provider(current: str | None, incoming: str) -> str | None:
    """
    Return the provider tag to store after `incoming` signs in to a record
    currently tagged `current`, or None if the record must stay as it is.
    """
    return PROVIDER_TRANSITIONS.get((current or CREDENTIALS, incoming))
