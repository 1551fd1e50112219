"""
VCA Production Workflow - Security Module
=========================================
Mints and verifies the locally signed HS256 tokens that the database API trusts,
and hashes sign-in PINs with bcrypt. Passwords never touch this service's
storage; the identity provider owns them.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from app.core.config import get_settings

settings = get_settings()

ALGORITHM = "HS256"
DATABASE_ROLE = "authenticated"
PASSWORD_RESET_PURPOSE = "password_reset"
PIN_SETUP_PURPOSE = "pin_setup"
PIN_SETUP_EXPIRE_MINUTES = 10


# ── PIN Hashing ──

def hash_password(password: str) -> str:
    """Hash a PIN (or any short secret) using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain value against a bcrypt hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hash_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hash_bytes)


# ── JWT Tokens ──

def _encode(claims: dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def create_access_token(
    *,
    profile_id: str,
    email: str,
    app_role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint the compatibility token. `sub` is always the local profile id."""
    claims = {
        "sub": str(profile_id),
        "email": email,
        "role": DATABASE_ROLE,
        "app_role": app_role,
    }
    return _encode(claims, expires_delta or timedelta(minutes=settings.access_token_expire_minutes))


def create_password_reset_token(*, profile_id: str, email: str) -> str:
    claims = {"sub": str(profile_id), "email": email, "purpose": PASSWORD_RESET_PURPOSE}
    return _encode(claims, timedelta(minutes=settings.password_reset_expire_minutes))


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a token. Returns None when the signature or expiry is invalid."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose"):
        # purpose-scoped tokens are never valid as access tokens
        return None
    return payload


def decode_password_reset_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != PASSWORD_RESET_PURPOSE:
        return None
    return payload


def create_pin_setup_token(*, profile_id: str, email: str) -> str:
    claims = {"sub": str(profile_id), "email": email, "purpose": PIN_SETUP_PURPOSE}
    return _encode(claims, timedelta(minutes=PIN_SETUP_EXPIRE_MINUTES))


def decode_pin_setup_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != PIN_SETUP_PURPOSE:
        return None
    return payload
