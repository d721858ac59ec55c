"""
Credential hashing and access tokens.

PBKDF2-SHA256 password hashes stored as ``salt$hexdigest`` and HS256 JWTs
carrying ``{sub, role, organization}``.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from src.config import settings
from src.core import AuthenticationFailed

_PBKDF2_ITERATIONS = 100_000


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(plain: str, hashed: str) -> bool:
    try:
        salt, expected = hashed.split("$", 1)
    except ValueError:
        return False
    check = hashlib.pbkdf2_hmac("sha256", plain.encode(), salt.encode(), _PBKDF2_ITERATIONS)
    return hmac.compare_digest(check.hex(), expected)


def create_access_token(
    user_id: str,
    role: str,
    organization_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.jwt_expires_minutes
    )
    claims = {
        "sub": user_id,
        "role": role,
        "organization": organization_id,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        AuthenticationFailed: Signature invalid, expired, or claims missing
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationFailed("Invalid or expired token.")

    if not payload.get("sub") or not payload.get("organization"):
        raise AuthenticationFailed("Invalid or expired token.")
    return payload
