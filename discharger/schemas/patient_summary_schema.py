from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from discharger.schemas.block_schema import Block
from discharger.schemas.translation_schema import SupportedLocale

SummaryStatus = Literal["draft", "published", "archived"]


class PatientSummaryCreate(BaseModel):
    """Schema for creating a patient summary."""
    patient_id: str = Field(..., min_length=1)
    blocks: List[Block] = Field(default_factory=list)
    discharge_text: Optional[str] = None
    status: SummaryStatus = "draft"


class PatientSummaryUpdate(BaseModel):
    """Schema for updating a patient summary. Omitted fields are left unchanged."""
    blocks: Optional[List[Block]] = None
    discharge_text: Optional[str] = None
    status: Optional[SummaryStatus] = None
    patient_user_id: Optional[str] = None
    preferred_locale: Optional[SupportedLocale] = None


class UpdateBlocksRequest(BaseModel):
    blocks: List[Block]


class UpdateLocaleRequest(BaseModel):
    preferred_locale: SupportedLocale


class RegenerateBlocksRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    block_types: Optional[List[str]] = Field(None, alias="blockTypes")


class PatientSummaryResponse(BaseModel):
    """Schema for patient summary response."""
    id: str
    patient_id: str
    doctor_id: str
    patient_user_id: Optional[str]
    blocks: List[Dict[str, Any]]
    discharge_text: Optional[str]
    status: str
    preferred_locale: str
    created_at: datetime
    updated_at: datetime


class PatientSummariesListResponse(BaseModel):
    summaries: List[PatientSummaryResponse]
    total: int


class PublicSummaryResponse(BaseModel):
    """Patient-facing view of a summary."""
    id: str
    patient_name: Optional[str]
    blocks: List[Dict[str, Any]]
    status: str
    preferred_locale: str
    access_role: str
    available_locales: List[str]
    updated_at: datetime


def blocks_to_json(blocks: List[Any]) -> List[Dict[str, Any]]:
    """Dump validated blocks with the camelCase keys they are stored under."""
    return [block.model_dump(by_alias=True, exclude_none=True) for block in blocks]
