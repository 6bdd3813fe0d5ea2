"""Shared access checks for routes under /patient-summaries."""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.patient_summary import PatientSummary
from discharger.db.models.user_profile import UserProfile
from discharger.services.patient_summary_service import SummaryAccess, get_patient_summary_service


async def load_summary_for_doctor(
    session: AsyncSession,
    summary_id: str,
    user: UserProfile,
) -> PatientSummary:
    """The summary, if ``user`` is the doctor who owns it."""
    summary = await get_patient_summary_service().get_summary(session, summary_id)
    if not summary:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient summary not found",
        )
    if summary.doctor_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return summary


async def require_summary_access(
    session: AsyncSession,
    summary_id: str,
    user: Optional[UserProfile],
    access_key: Optional[str],
) -> SummaryAccess:
    """Access through a bearer identity or an ``access_key`` query parameter."""
    if user is None and not access_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication or access key required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    summary_service = get_patient_summary_service()
    if not await summary_service.get_summary(session, summary_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient summary not found",
        )

    access = await summary_service.resolve_access(session, summary_id, user=user, access_key=access_key)
    if access:
        return access
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Invalid or inactive access key",
    )
