from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.patient import Patient
from discharger.schemas.patient_schema import PatientCreate, PatientUpdate
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class PatientService:
    """Service for patient management."""

    async def create_patient(
        self,
        session: AsyncSession,
        user_id: str,
        data: PatientCreate,
    ) -> Patient:
        patient = Patient(
            user_id=user_id,
            name=data.name,
            age=data.age,
            sex=data.sex,
            context=data.context,
            discharge_text=data.discharge_text,
        )
        session.add(patient)
        await session.commit()

        logger.info("patient.created", patient_id=patient.id, user_id=user_id)
        return patient

    async def get_patient(
        self,
        session: AsyncSession,
        patient_id: str,
        user_id: str,
    ) -> Optional[Patient]:
        """Get a patient owned by ``user_id``."""
        return await session.scalar(
            select(Patient).where(
                Patient.id == patient_id,
                Patient.user_id == user_id,
            )
        )

    async def search_patients(
        self,
        session: AsyncSession,
        user_id: str,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[List[Patient], int]:
        """Search the user's patients by name or context."""
        conditions = [Patient.user_id == user_id]
        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Patient.name.ilike(search_pattern),
                    Patient.context.ilike(search_pattern),
                )
            )

        total = await session.scalar(select(func.count()).select_from(Patient).where(*conditions))

        query = (
            select(Patient)
            .where(*conditions)
            .order_by(Patient.updated_at.desc())
            .limit(limit)
            .offset(offset)
        )
        patients = (await session.scalars(query)).all()

        return list(patients), total or 0

    async def update_patient(
        self,
        session: AsyncSession,
        patient_id: str,
        user_id: str,
        data: PatientUpdate,
    ) -> Optional[Patient]:
        patient = await self.get_patient(session, patient_id, user_id)
        if not patient:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(patient, field, value)

        await session.commit()
        logger.info("patient.updated", patient_id=patient_id)
        return patient

    async def delete_patient(
        self,
        session: AsyncSession,
        patient_id: str,
        user_id: str,
    ) -> bool:
        patient = await self.get_patient(session, patient_id, user_id)
        if not patient:
            return False

        await session.delete(patient)
        await session.commit()
        logger.info("patient.deleted", patient_id=patient_id)
        return True

    async def cleanup_if_empty(
        self,
        session: AsyncSession,
        patient_id: str,
        user_id: str,
    ) -> Optional[bool]:
        """Delete a patient that was created but never filled in.

        Returns None when the patient does not exist, otherwise whether it was deleted.
        """
        patient = await self.get_patient(session, patient_id, user_id)
        if not patient:
            return None

        is_empty = not any(
            (value or "").strip()
            for value in (patient.name, patient.context, patient.discharge_text)
        )
        if not is_empty:
            return False

        await session.delete(patient)
        await session.commit()
        logger.info("patient.cleaned_up", patient_id=patient_id)
        return True


_patient_service: Optional[PatientService] = None


def get_patient_service() -> PatientService:
    global _patient_service
    if _patient_service is None:
        _patient_service = PatientService()
    return _patient_service
