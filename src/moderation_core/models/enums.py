"""Enumerations shared by the moderation models and schemas."""

from enum import Enum


class ContentType(str, Enum):
    """Kinds of content that can be reported, flagged or queued."""

    POST = "POST"
    COMMENT = "COMMENT"
    USER_PROFILE = "USER_PROFILE"
    MEDIA = "MEDIA"
    MESSAGE = "MESSAGE"


class ReportType(str, Enum):
    """Policy category claimed by a user report."""

    THREAT = "THREAT"
    HATE_SPEECH = "HATE_SPEECH"
    COPYRIGHT_VIOLATION = "COPYRIGHT_VIOLATION"
    HARASSMENT = "HARASSMENT"
    INAPPROPRIATE_CONTENT = "INAPPROPRIATE_CONTENT"
    SPAM = "SPAM"
    MISLEADING = "MISLEADING"
    OTHER = "OTHER"


class ReportStatus(str, Enum):
    """Lifecycle of a report. RESOLVED and DISMISSED are terminal."""

    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class ContentFlagType(str, Enum):
    """Signal category attached to a content flag."""

    SPAM = "SPAM"
    HATE_SPEECH = "HATE_SPEECH"
    VIOLENCE = "VIOLENCE"
    ADULT_CONTENT = "ADULT_CONTENT"
    HARASSMENT = "HARASSMENT"
    MISINFORMATION = "MISINFORMATION"
    COPYRIGHT = "COPYRIGHT"
    OTHER = "OTHER"


class ModerationAction(str, Enum):
    """Remedial decision recorded when a queue item is processed."""

    NONE = "NONE"
    WARNING = "WARNING"
    CONTENT_REMOVAL = "CONTENT_REMOVAL"
    USER_SUSPENSION = "USER_SUSPENSION"
    USER_BAN = "USER_BAN"
    CONTENT_QUARANTINE = "CONTENT_QUARANTINE"


class AppealStatus(str, Enum):
    """Lifecycle of an appeal. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not AppealStatus.PENDING
