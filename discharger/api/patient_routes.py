from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.patient import Patient
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.patient_schema import (
    PatientCleanupResponse,
    PatientCreate,
    PatientUpdate,
    PatientResponse,
    PatientsListResponse,
)
from discharger.services.patient_service import get_patient_service
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/patients", tags=["patients"])
logger = get_logger(__name__)


def _to_response(patient: Patient) -> PatientResponse:
    return PatientResponse(
        id=patient.id,
        user_id=patient.user_id,
        name=patient.name,
        age=patient.age,
        sex=patient.sex,
        context=patient.context,
        discharge_text=patient.discharge_text,
        created_at=patient.created_at,
        updated_at=patient.updated_at,
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Patient not found",
    )


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    data: PatientCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientResponse:
    patient = await get_patient_service().create_patient(
        session=session,
        user_id=current_user.id,
        data=data,
    )
    return _to_response(patient)


@router.get("", response_model=PatientsListResponse)
async def list_patients(
    search: Optional[str] = Query(None, description="Search by name or context"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientsListResponse:
    patients, total = await get_patient_service().search_patients(
        session=session,
        user_id=current_user.id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return PatientsListResponse(
        patients=[_to_response(p) for p in patients],
        total=total,
    )


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientResponse:
    patient = await get_patient_service().get_patient(
        session=session,
        patient_id=patient_id,
        user_id=current_user.id,
    )
    if not patient:
        raise _not_found()
    return _to_response(patient)


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: str,
    data: PatientUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientResponse:
    patient = await get_patient_service().update_patient(
        session=session,
        patient_id=patient_id,
        user_id=current_user.id,
        data=data,
    )
    if not patient:
        raise _not_found()
    return _to_response(patient)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
):
    success = await get_patient_service().delete_patient(
        session=session,
        patient_id=patient_id,
        user_id=current_user.id,
    )
    if not success:
        raise _not_found()


@router.post("/{patient_id}/cleanup", response_model=PatientCleanupResponse)
async def cleanup_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientCleanupResponse:
    """Remove a patient left blank (no name, context or discharge text)."""
    deleted = await get_patient_service().cleanup_if_empty(
        session=session,
        patient_id=patient_id,
        user_id=current_user.id,
    )
    if deleted is None:
        raise _not_found()
    return PatientCleanupResponse(deleted=deleted, patientId=patient_id)
