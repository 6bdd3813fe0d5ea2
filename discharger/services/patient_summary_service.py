from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.patient import Patient
from discharger.db.models.patient_access_key import PatientAccessKey
from discharger.db.models.patient_summary import PatientSummary
from discharger.db.models.summary_translation import SummaryTranslation
from discharger.db.models.user_profile import UserProfile
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class TranslationExistsError(RuntimeError):
    """A translation for this (summary, locale) pair is already stored."""


@dataclass
class SummaryAccess:
    summary: PatientSummary
    # doctor | patient_user | patient | caregiver
    role: str
    access_key_id: Optional[str] = None

    @property
    def is_doctor(self) -> bool:
        return self.role == "doctor"


class PatientSummaryService:
    """Service for patient summaries and their cached translations."""

    async def list_summaries(
        self,
        session: AsyncSession,
        doctor_id: str,
        patient_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[List[PatientSummary], int]:
        conditions = [PatientSummary.doctor_id == doctor_id]
        if patient_id:
            conditions.append(PatientSummary.patient_id == patient_id)
        if status:
            conditions.append(PatientSummary.status == status)

        total = await session.scalar(
            select(func.count()).select_from(PatientSummary).where(*conditions)
        )
        summaries = (await session.scalars(
            select(PatientSummary)
            .where(*conditions)
            .order_by(PatientSummary.created_at.desc())
            .limit(limit)
            .offset(offset)
        )).all()
        return list(summaries), total or 0

    async def create_summary(
        self,
        session: AsyncSession,
        doctor_id: str,
        patient_id: str,
        blocks: List[Dict[str, Any]],
        discharge_text: Optional[str],
        status: str,
    ) -> Optional[PatientSummary]:
        """Returns None when the patient does not belong to the doctor."""
        patient = await session.scalar(
            select(Patient).where(Patient.id == patient_id, Patient.user_id == doctor_id)
        )
        if not patient:
            logger.warning("summary.create_failed", reason="patient_not_found", patient_id=patient_id)
            return None

        summary = PatientSummary(
            patient_id=patient_id,
            doctor_id=doctor_id,
            blocks=blocks,
            discharge_text=discharge_text,
            status=status,
        )
        session.add(summary)
        await session.commit()
        logger.info("summary.created", summary_id=summary.id, patient_id=patient_id, block_count=len(blocks))
        return summary

    async def get_summary(self, session: AsyncSession, summary_id: str) -> Optional[PatientSummary]:
        return await session.get(PatientSummary, summary_id)

    async def resolve_access(
        self,
        session: AsyncSession,
        summary_id: str,
        user: Optional[UserProfile] = None,
        access_key: Optional[str] = None,
    ) -> Optional[SummaryAccess]:
        """Work out who may read a summary: its doctor, its linked patient
        account, or the holder of an active access key. None when nobody."""
        summary = await self.get_summary(session, summary_id)
        if not summary:
            return None

        if user is not None:
            if summary.doctor_id == user.id:
                return SummaryAccess(summary=summary, role="doctor")
            if summary.patient_user_id and summary.patient_user_id == user.id:
                return SummaryAccess(summary=summary, role="patient_user")

        if access_key:
            key = await session.scalar(
                select(PatientAccessKey).where(
                    PatientAccessKey.summary_id == summary_id,
                    PatientAccessKey.access_key == access_key,
                    PatientAccessKey.is_active.is_(True),
                )
            )
            if key:
                return SummaryAccess(summary=summary, role=key.role, access_key_id=key.id)
        return None

    async def update_summary(
        self,
        session: AsyncSession,
        summary: PatientSummary,
        updates: Dict[str, Any],
    ) -> PatientSummary:
        """Apply field updates. New blocks invalidate every cached translation."""
        blocks_changed = "blocks" in updates
        for field, value in updates.items():
            setattr(summary, field, value)

        if blocks_changed:
            await self._delete_translations(session, summary.id)
        await session.commit()

        logger.info(
            "summary.updated",
            summary_id=summary.id,
            fields=sorted(updates),
            translations_invalidated=blocks_changed,
        )
        return summary

    async def update_blocks(
        self,
        session: AsyncSession,
        summary: PatientSummary,
        blocks: List[Dict[str, Any]],
    ) -> PatientSummary:
        return await self.update_summary(session, summary, {"blocks": blocks})

    async def delete_summary(self, session: AsyncSession, summary: PatientSummary) -> None:
        summary_id = summary.id
        await self._delete_translations(session, summary_id)
        await session.execute(delete(PatientAccessKey).where(PatientAccessKey.summary_id == summary_id))
        await session.delete(summary)
        await session.commit()
        logger.info("summary.deleted", summary_id=summary_id)

    async def _delete_translations(self, session: AsyncSession, summary_id: str) -> int:
        result = await session.execute(
            delete(SummaryTranslation).where(SummaryTranslation.summary_id == summary_id)
        )
        if result.rowcount:
            logger.info("summary.translations_invalidated", summary_id=summary_id, count=result.rowcount)
        return result.rowcount or 0

    # ----- translations -----

    async def list_translations(self, session: AsyncSession, summary_id: str) -> List[SummaryTranslation]:
        return list((await session.scalars(
            select(SummaryTranslation)
            .where(SummaryTranslation.summary_id == summary_id)
            .order_by(SummaryTranslation.created_at.desc())
        )).all())

    async def get_translation(
        self,
        session: AsyncSession,
        summary_id: str,
        locale: str,
    ) -> Optional[SummaryTranslation]:
        return await session.scalar(
            select(SummaryTranslation).where(
                SummaryTranslation.summary_id == summary_id,
                SummaryTranslation.locale == locale,
            )
        )

    async def save_translation(
        self,
        session: AsyncSession,
        summary_id: str,
        locale: str,
        source_locale: str,
        translated_blocks: List[Dict[str, Any]],
    ) -> SummaryTranslation:
        """Insert a translation; a concurrent insert for the same locale raises
        TranslationExistsError instead of creating a duplicate."""
        translation = SummaryTranslation(
            summary_id=summary_id,
            locale=locale,
            source_locale=source_locale,
            translated_blocks=translated_blocks,
        )
        session.add(translation)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning("summary.translation_conflict", summary_id=summary_id, locale=locale)
            raise TranslationExistsError(locale) from e

        logger.info("summary.translation_created", summary_id=summary_id, locale=locale)
        return translation


_patient_summary_service: Optional[PatientSummaryService] = None


def get_patient_summary_service() -> PatientSummaryService:
    global _patient_summary_service
    if _patient_summary_service is None:
        _patient_summary_service = PatientSummaryService()
    return _patient_summary_service
