# app/auth/__init__.py
"""
Authentication modules for the community backend.

This package contains:
- identity.py: Normalized user identity (provider agnostic)
- providers.py: Provider tags and the allowed provider transitions
"""
from app.auth.identity import UserIdentity

__all__ = ["UserIdentity"]
