from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
from jose import jwt

from schoolledger.core.config import settings


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(
    *,
    user_id: UUID,
    school_id: UUID,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Signed token carrying the user and the school every request is scoped to."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    claims = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "school_id": str(school_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Raises jose.JWTError when the token is malformed, tampered with or expired."""
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
