from __future__ import annotations

from typing import List, Optional

import phonenumbers
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.config.settings import get_settings
from discharger.db.models.patient_access_key import PatientAccessKey
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class InvalidPhoneNumberError(ValueError):
    def __init__(self, phone_number: str) -> None:
        self.phone_number = phone_number
        super().__init__("Invalid phone number")


def normalize_phone_number(phone_number: str, default_region: Optional[str] = None) -> str:
    """Return the number in E.164 form, reading local numbers in ``default_region``."""
    region = default_region or get_settings().default_phone_region
    try:
        parsed = phonenumbers.parse(phone_number, region)
    except phonenumbers.NumberParseException as e:
        raise InvalidPhoneNumberError(phone_number) from e
    if not phonenumbers.is_valid_number(parsed):
        raise InvalidPhoneNumberError(phone_number)
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def build_access_url(summary_id: str, access_key: str) -> str:
    base_url = get_settings().app_base_url.rstrip("/")
    return f"{base_url}/patient/{summary_id}?access={access_key}"


class AccessKeyService:
    """Service for patient and caregiver access links."""

    async def list_active(self, session: AsyncSession, summary_id: str) -> List[PatientAccessKey]:
        return list((await session.scalars(
            select(PatientAccessKey)
            .where(
                PatientAccessKey.summary_id == summary_id,
                PatientAccessKey.is_active.is_(True),
            )
            .order_by(PatientAccessKey.created_at.desc())
        )).all())

    async def create_or_reuse(
        self,
        session: AsyncSession,
        summary_id: str,
        phone_number: str,
        role: str,
    ) -> tuple[PatientAccessKey, bool]:
        """Return the active key for this phone, creating one if needed.

        An existing key keeps its token; its role is updated when it differs.
        The bool is True when an existing key was reused.
        """
        e164 = normalize_phone_number(phone_number)
        existing = await session.scalar(
            select(PatientAccessKey).where(
                PatientAccessKey.summary_id == summary_id,
                PatientAccessKey.phone_number == e164,
                PatientAccessKey.is_active.is_(True),
            )
        )
        if existing:
            if existing.role != role:
                existing.role = role
                await session.commit()
                logger.info("access_key.role_updated", access_key_id=existing.id, role=role)
            return existing, True

        key = PatientAccessKey(summary_id=summary_id, phone_number=e164, role=role)
        session.add(key)
        await session.commit()
        logger.info("access_key.created", access_key_id=key.id, summary_id=summary_id, role=role)
        return key, False

    async def create_link(self, session: AsyncSession, summary_id: str, role: str) -> PatientAccessKey:
        """New key with no phone number, for QR codes."""
        key = PatientAccessKey(summary_id=summary_id, role=role)
        session.add(key)
        await session.commit()
        logger.info("access_key.link_created", access_key_id=key.id, summary_id=summary_id, role=role)
        return key

    async def deactivate(
        self,
        session: AsyncSession,
        summary_id: str,
        key_id: str,
    ) -> Optional[PatientAccessKey]:
        key = await session.scalar(
            select(PatientAccessKey).where(
                PatientAccessKey.id == key_id,
                PatientAccessKey.summary_id == summary_id,
            )
        )
        if not key:
            return None
        key.is_active = False
        await session.commit()
        logger.info("access_key.deactivated", access_key_id=key_id, summary_id=summary_id)
        return key


_access_key_service: Optional[AccessKeyService] = None


def get_access_key_service() -> AccessKeyService:
    global _access_key_service
    if _access_key_service is None:
        _access_key_service = AccessKeyService()
    return _access_key_service
