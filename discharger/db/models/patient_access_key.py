from __future__ import annotations

import enum
import secrets
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from discharger.db.base import Base


class AccessRoleEnum(str, enum.Enum):
    PATIENT = "patient"
    CAREGIVER = "caregiver"


if TYPE_CHECKING:
    from discharger.db.models.patient_summary import PatientSummary


def generate_access_token() -> str:
    return secrets.token_urlsafe(32)


class PatientAccessKey(Base):
    """Shared-secret link granting session-free access to one summary."""
    __tablename__ = "patient_access_keys"

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
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=AccessRoleEnum.PATIENT.value)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    access_key: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
        default=generate_access_token,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    summary: Mapped["PatientSummary"] = relationship("PatientSummary", back_populates="access_keys")
