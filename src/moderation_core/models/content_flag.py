"""SQLAlchemy model for confidence-scored content flags."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from moderation_core.db.session import Base
from moderation_core.db.time import utcnow

from .enums import ContentFlagType, ContentType


class ContentFlag(Base):
    """Signal (manual or automated) attached to a content item.

    Flags are independent of reports. Once resolved, a flag is history and is
    never modified again.
    """

    __tablename__ = "content_flag"
    __table_args__ = (
        Index("ix_content_flag_content_type", "content_id", "flag_type"),
        Index("ix_content_flag_open_confidence", "is_resolved", "confidence"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    content_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    content_type: Mapped[ContentType] = mapped_column(
        Enum(ContentType, native_enum=False, length=32),
        nullable=False,
    )
    flag_type: Mapped[ContentFlagType] = mapped_column(
        Enum(ContentFlagType, native_enum=False, length=32),
        nullable=False,
    )
    # Opaque detector score in [0, 1].
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    flagged_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
