"""Models for the moderation work queue and its audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Index,
    SmallInteger,
    String,
    Text,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from moderation_core.db.session import Base
from moderation_core.db.time import utcnow

from .enums import ContentType, ModerationAction


class ModerationQueueItem(Base):
    """Deduplicated unit of review work for one content id.

    The row is a disposable projection: processed rows are garbage-collected
    by ``cleanup_old_items`` while ``ModerationActionLog`` keeps the record.
    """

    __tablename__ = "moderation_queue"
    __table_args__ = (
        Index("ix_moderation_queue_schedule", "is_processed", "priority", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    content_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content_type: Mapped[ContentType] = mapped_column(
        Enum(ContentType, native_enum=False, length=32),
        nullable=False,
    )
    # 1 = lowest, 4 = most urgent.
    priority: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # ContentFlag ids that contributed to this item.
    flags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    is_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    action: Mapped[ModerationAction] = mapped_column(
        Enum(ModerationAction, native_enum=False, length=32),
        nullable=False,
        default=ModerationAction.NONE,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class ModerationActionLog(Base):
    """Append-only audit record of a moderation decision."""

    __tablename__ = "moderation_action_log"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    moderator_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[ModerationAction] = mapped_column(
        Enum(ModerationAction, native_enum=False, length=32),
        nullable=False,
    )
    target_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Column is named "metadata" in the DB; the attribute avoids Base.metadata.
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )


# One slot per content id while the item is still open; processed rows fall
# out of the index so the same content can be queued again later.
Index(
    "uq_moderation_queue_active_content",
    ModerationQueueItem.content_id,
    unique=True,
    sqlite_where=ModerationQueueItem.is_processed == false(),
    postgresql_where=ModerationQueueItem.is_processed == false(),
)
