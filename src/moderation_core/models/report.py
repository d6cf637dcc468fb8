"""SQLAlchemy model for user-submitted reports."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from moderation_core.db.session import Base
from moderation_core.db.time import utcnow

from .enums import ContentType, ReportStatus, ReportType


class Report(Base):
    """A user's claim that a piece of content or another user violates policy."""

    __tablename__ = "report"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Target context: a reported user, a content item, or both.
    reported_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    content_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    content_type: Mapped[ContentType | None] = mapped_column(
        Enum(ContentType, native_enum=False, length=32),
        nullable=True,
    )

    report_type: Mapped[ReportType] = mapped_column(
        Enum(ReportType, native_enum=False, length=32),
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 1 = lowest, 4 = most severe.
    priority: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, native_enum=False, length=32),
        nullable=False,
        default=ReportStatus.PENDING,
        index=True,
    )

    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Report {self.id} {self.report_type.value} {self.status.value}>"
