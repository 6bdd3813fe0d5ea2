from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class UserPreferences(BaseModel):
    defaultDocumentIds: List[str] = Field(default_factory=list)
    favoriteDocumentIds: List[str] = Field(default_factory=list)
    theme: Literal["light", "dark", "system"] = "system"


class UserPreferencesUpdate(BaseModel):
    defaultDocumentIds: Optional[List[str]] = None
    favoriteDocumentIds: Optional[List[str]] = None
    theme: Optional[Literal["light", "dark", "system"]] = None


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    organization: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, max_length=100)


class UserProfileResponse(BaseModel):
    id: str
    email: Optional[str]
    name: Optional[str]
    organization: Optional[str]
    role: Optional[str]
    preferences: UserPreferences
    created_at: datetime
    updated_at: datetime
