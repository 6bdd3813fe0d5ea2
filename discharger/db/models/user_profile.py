from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from discharger.db.base import Base, JSONType


DEFAULT_PREFERENCES: dict[str, Any] = {
    "defaultDocumentIds": [],
    "favoriteDocumentIds": [],
    "theme": "system",
}


class UserProfile(Base):
    """Clinician profile keyed by the identity provider's user id."""
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    preferences: Mapped[dict] = mapped_column(
        JSONType,
        default=lambda: dict(DEFAULT_PREFERENCES),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
