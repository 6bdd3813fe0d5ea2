from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.user_profile import DEFAULT_PREFERENCES, UserProfile
from discharger.schemas.user_schema import UserPreferencesUpdate, UserProfileUpdate
from discharger.services.auth_service import Identity
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class UserService:
    """Service for clinician profiles."""

    async def ensure_profile(self, session: AsyncSession, identity: Identity) -> UserProfile:
        """Get the profile for a verified identity, creating it on first sight."""
        profile = await session.get(UserProfile, identity.user_id)
        if profile:
            return profile

        profile = UserProfile(
            id=identity.user_id,
            email=identity.email,
            name=identity.name,
            preferences=dict(DEFAULT_PREFERENCES),
        )
        session.add(profile)
        await session.commit()
        logger.info("user.profile_created", user_id=identity.user_id)
        return profile

    async def update_profile(
        self,
        session: AsyncSession,
        profile: UserProfile,
        data: UserProfileUpdate,
    ) -> UserProfile:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        await session.commit()
        logger.info("user.profile_updated", user_id=profile.id)
        return profile

    async def update_preferences(
        self,
        session: AsyncSession,
        profile: UserProfile,
        data: UserPreferencesUpdate,
    ) -> UserProfile:
        # Reassign so the JSON column is flagged dirty
        merged = {**DEFAULT_PREFERENCES, **(profile.preferences or {})}
        merged.update(data.model_dump(exclude_none=True))
        profile.preferences = merged
        await session.commit()
        logger.info("user.preferences_updated", user_id=profile.id)
        return profile


_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
