from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class PatientCreate(BaseModel):
    """Schema for creating a patient."""
    name: str = Field(..., min_length=1, max_length=255)
    age: int = Field(..., ge=0, le=150)
    sex: str = Field(..., min_length=1, max_length=20)
    context: Optional[str] = None
    discharge_text: Optional[str] = None


class PatientUpdate(BaseModel):
    """Schema for updating a patient."""
    name: Optional[str] = Field(None, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=150)
    sex: Optional[str] = Field(None, max_length=20)
    context: Optional[str] = None
    discharge_text: Optional[str] = None


class PatientResponse(BaseModel):
    """Schema for patient response."""
    id: str
    user_id: str
    name: str
    age: Optional[int]
    sex: Optional[str]
    context: Optional[str]
    discharge_text: Optional[str]
    created_at: datetime
    updated_at: datetime


class PatientsListResponse(BaseModel):
    """Schema for list of patients response."""
    patients: List[PatientResponse]
    total: int


class PatientCleanupResponse(BaseModel):
    deleted: bool
    patientId: str
