"""Session-backed dependencies."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from forum_sso.db.session import get_db
from forum_sso.services.stash import SessionStash


def get_session_stash(request: Request, db: Session = Depends(get_db)) -> SessionStash:
    """Stash bound to the caller's own session."""
    return SessionStash(request.session, db)


__all__ = ["get_session_stash"]
