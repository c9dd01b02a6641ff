from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.models import User
from schoolledger.auth.schemas import CurrentUser
from schoolledger.auth.security import decode_access_token
from schoolledger.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their school from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    school_id_str = payload.get("school_id")
    if not user_id_str or not school_id_str:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        school_id = UUID(school_id_str)
    except ValueError:
        raise credentials_exception

    # Role is read from the database so a demoted user loses access before the token expires
    stmt = select(User).where(User.id == user_id, User.school_id == school_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user or user.status != "ACTIVE":
        raise credentials_exception

    return CurrentUser(
        id=user.id,
        school_id=user.school_id,
        role=user.role,
        full_name=user.full_name,
    )
