"""Content report moderation."""
