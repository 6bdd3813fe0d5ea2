from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AccessRole = Literal["patient", "caregiver"]

PHONE_PATTERN = r"^\+?[\d\s\-()]+$"


class AccessKeyCreate(BaseModel):
    phone_number: str = Field(..., min_length=6, max_length=32, pattern=PHONE_PATTERN)
    role: AccessRole = "patient"


class ShareSmsRequest(BaseModel):
    phone_number: str = Field(..., min_length=6, max_length=32, pattern=PHONE_PATTERN)
    role: AccessRole = "patient"
    patient_name: str = Field(..., min_length=1, max_length=255)


class QrCodeRequest(BaseModel):
    role: AccessRole = "patient"


class AccessKeyResponse(BaseModel):
    id: str
    summary_id: str
    role: str
    phone_number: Optional[str]
    access_key: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AccessKeysListResponse(BaseModel):
    access_keys: List[AccessKeyResponse]


class AccessKeyCreatedResponse(BaseModel):
    access_key: AccessKeyResponse
    access_url: str
    was_existing: bool


class ShareSmsResponse(BaseModel):
    success: bool
    message_sid: Optional[str]
    access_url: str
    was_existing: bool


class QrCodeResponse(BaseModel):
    access_url: str
    access_key: str
