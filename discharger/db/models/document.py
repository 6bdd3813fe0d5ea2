from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from discharger.db.base import Base, JSONType


class DocumentSourceEnum(str, enum.Enum):
    USER = "user"
    COMMUNITY = "community"


class ShareStatusEnum(str, enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class Document(Base):
    """Uploaded reference document and its extracted text."""
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(20), default=DocumentSourceEnum.USER.value)
    share_status: Mapped[str] = mapped_column(String(20), default=ShareStatusEnum.PRIVATE.value)
    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    storage_key: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    s3_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    full_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    document_metadata: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)
    tags: Mapped[list] = mapped_column(JSONType, default=list)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
