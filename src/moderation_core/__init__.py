"""Moderation pipeline core: reports, content flags, the review queue and appeals."""

__version__ = "0.1.0"
