from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from discharger.db.base import Base, JSONType


class SummaryStatusEnum(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


if TYPE_CHECKING:
    from discharger.db.models.patient import Patient
    from discharger.db.models.summary_translation import SummaryTranslation
    from discharger.db.models.patient_access_key import PatientAccessKey


class PatientSummary(Base):
    """Patient-facing summary made of structured blocks."""
    __tablename__ = "patient_summaries"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    patient_id: Mapped[str] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    patient_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    blocks: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    discharge_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=SummaryStatusEnum.DRAFT.value,
        nullable=False,
    )
    preferred_locale: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    patient: Mapped["Patient"] = relationship("Patient", back_populates="summaries")
    translations: Mapped[List["SummaryTranslation"]] = relationship(
        "SummaryTranslation",
        back_populates="summary",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    access_keys: Mapped[List["PatientAccessKey"]] = relationship(
        "PatientAccessKey",
        back_populates="summary",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
