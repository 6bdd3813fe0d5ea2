from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from discharger.db.base import Base, JSONType


if TYPE_CHECKING:
    from discharger.db.models.patient_summary import PatientSummary


class SummaryTranslation(Base):
    """Cached translation of a summary's blocks into one locale."""
    __tablename__ = "summary_translations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    summary_id: Mapped[str] = mapped_column(
        ForeignKey("patient_summaries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    locale: Mapped[str] = mapped_column(String(10), nullable=False)
    source_locale: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    translated_blocks: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # One translation per locale
    __table_args__ = (
        UniqueConstraint('summary_id', 'locale', name='uq_summary_translation_locale'),
    )

    summary: Mapped["PatientSummary"] = relationship("PatientSummary", back_populates="translations")
