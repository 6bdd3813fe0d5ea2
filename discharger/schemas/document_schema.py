from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class DocumentResponse(BaseModel):
    """Schema for document response."""
    id: str
    user_id: Optional[str]
    filename: str
    summary: Optional[str]
    source: str
    share_status: str
    uploaded_by: Optional[str]
    storage_key: Optional[str]
    s3_url: Optional[str]
    content_type: Optional[str]
    file_size: Optional[int]
    page_count: Optional[int]
    metadata: Dict[str, Any]
    tags: List[str]
    uploaded_at: datetime
    created_at: datetime


class DocumentDetailResponse(DocumentResponse):
    full_text: Optional[str]


class DocumentUploadResponse(BaseModel):
    documents: List[DocumentResponse]
    length: int


class SignedUrlResponse(BaseModel):
    signed_url: str
    expires_in: int


class DocumentDeleteResponse(BaseModel):
    message: str
    document_id: str
    storage_deleted: bool
