from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.hospital import Hospital
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user

router = APIRouter(prefix="/hospitals", tags=["hospitals"])


class HospitalResponse(BaseModel):
    """Schema for hospital response."""
    id: str
    name: str
    local_health_district: Optional[str]
    created_at: datetime


class HospitalsListResponse(BaseModel):
    """Schema for list of hospitals response."""
    hospitals: List[HospitalResponse]
    total: int


@router.get("", response_model=HospitalsListResponse)
async def list_hospitals(
    q: Optional[str] = Query(None, description="Search by name or district"),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> HospitalsListResponse:
    """List hospitals for the organisation picker."""
    query = select(Hospital)
    if q:
        pattern = f"%{q}%"
        query = query.where(
            or_(
                Hospital.name.ilike(pattern),
                Hospital.local_health_district.ilike(pattern),
            )
        )
    hospitals = (await session.scalars(query.order_by(Hospital.name))).all()

    return HospitalsListResponse(
        hospitals=[
            HospitalResponse(
                id=h.id,
                name=h.name,
                local_health_district=h.local_health_district,
                created_at=h.created_at,
            )
            for h in hospitals
        ],
        total=len(hospitals),
    )
