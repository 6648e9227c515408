from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from space_together.core.config import settings
from space_together.core.exceptions import UnauthenticatedError


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # In case the stored hash is invalid/corrupted
        return False


def strip_bearer(token: Optional[str]) -> Optional[str]:
    if token is None:
        return None
    token = token.strip()
    if token[:7].lower() == "bearer ":
        token = token[7:].strip()
    return token or None


def _encode(subject: Dict[str, Any], secret: str, expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    to_encode = subject.copy()
    to_encode.update({"iat": int(now.timestamp()), "exp": now + timedelta(minutes=expires_minutes)})
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def _decode(token: Optional[str], secret: str) -> Dict[str, Any]:
    token = strip_bearer(token)
    if not token:
        raise UnauthenticatedError("Missing token")
    try:
        return jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthenticatedError("Invalid or expired token")


def create_access_token(*, subject: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """Sign a user token."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    return _encode(subject, settings.jwt_secret_key, expires_minutes)


def decode_access_token(token: Optional[str]) -> Dict[str, Any]:
    return _decode(token, settings.jwt_secret_key)


def create_school_token(*, subject: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.school_token_expire_minutes
    return _encode(subject, settings.school_secret, expires_minutes)


def decode_school_token(token: Optional[str]) -> Dict[str, Any]:
    return _decode(token, settings.school_secret)
