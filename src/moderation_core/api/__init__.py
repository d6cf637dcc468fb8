"""HTTP adapter for the moderation core."""
