"""Database utilities package."""
