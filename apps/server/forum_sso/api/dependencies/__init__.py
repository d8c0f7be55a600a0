"""API dependency exports."""

from forum_sso.db.session import get_db

from .auth import require_active_user
from .session import get_session_stash

__all__ = [
    "get_db",
    "get_session_stash",
    "require_active_user",
]
