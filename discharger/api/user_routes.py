from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.user_schema import (
    UserPreferences,
    UserPreferencesUpdate,
    UserProfileResponse,
    UserProfileUpdate,
)
from discharger.services.user_service import get_user_service

router = APIRouter(prefix="/users", tags=["users"])


def _to_response(profile: UserProfile) -> UserProfileResponse:
    return UserProfileResponse(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        organization=profile.organization,
        role=profile.role,
        preferences=UserPreferences(**(profile.preferences or {})),
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: UserProfile = Depends(get_current_user),
) -> UserProfileResponse:
    """The caller's profile; created on first request."""
    return _to_response(current_user)


@router.put("/profile", response_model=UserProfileResponse)
async def update_profile(
    data: UserProfileUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> UserProfileResponse:
    profile = await get_user_service().update_profile(session, current_user, data)
    return _to_response(profile)


@router.put("/preferences", response_model=UserProfileResponse)
async def update_preferences(
    data: UserPreferencesUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> UserProfileResponse:
    profile = await get_user_service().update_preferences(session, current_user, data)
    return _to_response(profile)
