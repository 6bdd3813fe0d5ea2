from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.user_profile import UserProfile
from discharger.services.auth_service import get_auth_service
from discharger.services.user_service import get_user_service

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> UserProfile:
    """
    Dependency to get the current authenticated user.
    Raises HTTPException if not authenticated.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    identity = get_auth_service().verify(credentials.credentials)
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await get_user_service().ensure_profile(session, identity)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[UserProfile]:
    """
    Dependency to get the current user if authenticated.
    Returns None if not authenticated (doesn't raise exception).
    """
    if not credentials:
        return None

    identity = get_auth_service().verify(credentials.credentials)
    if not identity:
        return None
    return await get_user_service().ensure_profile(session, identity)
