"""
auth/tokens.py -- Password hashing, session JWTs, and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       id, username, email, role, iat and exp. A token is valid iff its
       signature verifies against the current key AND now < exp. Nothing is
       stored server-side, so a deleted user's token stays valid until it
       expires. Verification returns None on any failure -- route layer
       turns that into a 401 or a redirect.

  Passwords: bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 10).
       The _DUMMY_HASH constant enables timing equalization in auth/login.py
       so response time does not reveal whether a username exists.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup (see core/config.py).

  Cookie: "auth-token", httpOnly, SameSite=Strict, Secure in production,
       max-age equal to the token lifetime (7 days by default).

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User

logger = logging.getLogger("admindesk.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

AUTH_COOKIE = "auth-token"

# Claims every valid session token must carry.
_REQUIRED_CLAIMS = ("id", "username", "email", "role")

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated by bcrypt. The API layer
    caps password fields at 255 characters; bcrypt 4.x rejects >72 bytes, so
    the input is truncated here explicitly to keep hashing and verification
    consistent.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8")[:72], salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises: a malformed or placeholder hash is simply a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except Exception:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("admindesk_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user: User, expire_seconds: int = 0) -> str:
    """Encode a signed session JWT for user.

    Args:
        user:           The authenticated user. Only id, username, email and
                        role are embedded -- never the password hash.
        expire_seconds: Token lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds (7 days).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": user.username,
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str | None) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure.

    Bad signature, expired, malformed, missing claims and non-string input
    all return None. No exception crosses this boundary.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if any(claim not in payload for claim in _REQUIRED_CLAIMS):
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the session JWT as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="strict": never sent on cross-site requests (CSRF mitigation).
    secure: only sent over HTTPS when secure_cookies is on (production default).
    max_age: matches the JWT expiry so both expire together.
    """
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="strict",
        secure=bool(_settings.secure_cookies),
        max_age=_settings.token_expire_seconds,
    )


def clear_auth_cookie(response) -> None:
    """Delete the session cookie. Attributes must match set_auth_cookie()."""
    response.delete_cookie(
        AUTH_COOKIE,
        httponly=True,
        samesite="strict",
        secure=bool(_settings.secure_cookies),
    )
