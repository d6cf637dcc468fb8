"""Exception hierarchy raised by the moderation services.

Store failures (``sqlalchemy.exc.SQLAlchemyError``) are not wrapped; they are
logged by the service that hit them and propagate unchanged.
"""

from __future__ import annotations


class ModerationError(RuntimeError):
    """Base exception for moderation-core failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ModerationError):
    """Raised when a referenced report, flag, queue item or appeal is absent."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailure(ModerationError):
    """Raised for inputs the core refuses: missing targets, out-of-range values."""


class ConflictError(ModerationError):
    """Raised when an operation collides with existing state."""


class InvalidTransitionError(ConflictError):
    """Raised when a state machine is asked for a transition it does not allow."""

    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(f"{entity} cannot move from {current} to {requested}")
        self.current = current
        self.requested = requested
