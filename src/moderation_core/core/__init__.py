"""Core configuration for the moderation service."""

from .settings import Settings

__all__ = ["Settings"]
