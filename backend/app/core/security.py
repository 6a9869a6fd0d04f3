# app/core/security.py
from __future__ import annotations

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Salted hash comparison. Raises ValueError (passlib's UnknownHashError is a
    subclass) when the stored hash is not in a recognized format.
    """
    return pwd_context.verify(password, password_hash)
