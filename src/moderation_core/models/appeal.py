"""SQLAlchemy model for appeals against moderation outcomes."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, backref, mapped_column, relationship

from moderation_core.db.session import Base
from moderation_core.db.time import utcnow

from .enums import AppealStatus
from .report import Report


class Appeal(Base):
    """Contest of a moderation outcome, filed by the affected party.

    PENDING is the initial state; APPROVED and REJECTED are terminal.
    """

    __tablename__ = "appeal"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    # At most one appeal per report.
    report_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("report.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    appellant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AppealStatus] = mapped_column(
        Enum(AppealStatus, native_enum=False, length=32),
        nullable=False,
        default=AppealStatus.PENDING,
        index=True,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Deleting a report removes its appeal.
    report: Mapped[Report] = relationship(
        "Report",
        lazy="joined",
        backref=backref("appeal", uselist=False, cascade="all"),
    )
