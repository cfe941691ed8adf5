"""
Credentials for the two callers of this service.

The external scheduler presents ``Authorization: Bearer {CRON_SECRET}`` on the
billing trigger. The billing admin logs in with ``ADMIN_EMAIL`` and a
``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>`` password hash and gets a
short-lived JWT for the subscriptions router.
"""
from __future__ import annotations

import binascii
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

ALGORITHM = "HS256"
PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 210000
ADMIN_TOKEN_TTL = timedelta(hours=12)
ADMIN_ROLE = "billing_admin"
AUTH_SCHEME = HTTPBearer(auto_error=False)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _signing_key() -> str:
    return settings.secret_key.get_secret_value()


def hash_password(password: str, salt_hex: str, iterations: int = PASSWORD_ITERATIONS) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), iterations
    )
    return f"{PASSWORD_SCHEME}${iterations}${salt_hex}${binascii.hexlify(digest).decode('ascii')}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check ``password`` against ADMIN_PASSWORD_HASH; malformed hashes never match."""
    parts = stored_hash.split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME:
        return False
    _, iterations, salt_hex, _ = parts
    try:
        candidate = hash_password(password, salt_hex, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(candidate, stored_hash)


def verify_cron_secret(authorization: Optional[str]) -> bool:
    """
    Check an Authorization header against ``Bearer {CRON_SECRET}``.

    An unset or empty CRON_SECRET never authorizes.
    """
    if settings.cron_secret is None:
        return False
    secret = settings.cron_secret.get_secret_value()
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization.encode("utf-8"), f"Bearer {secret}".encode("utf-8"))


def create_access_token(subject: str, extra: Dict[str, Any] | None = None) -> str:
    issued = now_utc()
    claims: Dict[str, Any] = {
        "sub": subject,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ADMIN_TOKEN_TTL).timestamp()),
    }
    claims.update(extra or {})
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(AUTH_SCHEME),
) -> Dict[str, Any]:
    """Resolve the billing admin from a bearer JWT or refuse with 401."""
    if creds is None or not creds.credentials:
        raise _unauthorized("Missing authorization token")
    try:
        claims = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")

    if str(claims.get("sub", "")).strip().lower() != settings.admin_email.lower():
        raise _unauthorized("Token is not for the billing admin")
    return {
        "id": "admin",
        "email": settings.admin_email,
        "name": settings.admin_name,
        "role": ADMIN_ROLE,
    }
