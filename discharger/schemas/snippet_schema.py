from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SnippetCreate(BaseModel):
    shortcut: str = Field(..., min_length=1, max_length=50)
    content: str = Field(..., min_length=1)


class SnippetUpdate(BaseModel):
    shortcut: Optional[str] = Field(None, min_length=1, max_length=50)
    content: Optional[str] = Field(None, min_length=1)


class SnippetResponse(BaseModel):
    id: str
    user_id: str
    shortcut: str
    content: str
    created_at: datetime
    updated_at: datetime


class SnippetsListResponse(BaseModel):
    snippets: List[SnippetResponse]
    total: int
