"""Service functions for user activity logs and SSO notifications."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from forum_sso.models.user_activity_log import UserActivityLog
from forum_sso.schemas.user_activity_log import UserActivityLogCreate

logger = logging.getLogger(__name__)


def get_user_activities(db: Session, user_id: int, limit: int = 50) -> List[UserActivityLog]:
    """Fetch recent activity logs for a specific user."""
    statement = (
        select(UserActivityLog)
        .where(UserActivityLog.user_id == user_id)
        .order_by(UserActivityLog.timestamp.desc(), UserActivityLog.id.desc())
        .limit(limit)
    )
    return list(db.execute(statement).scalars().all())


def create_user_activity_log(db: Session, activity_in: UserActivityLogCreate) -> UserActivityLog:
    """Create a new user activity log."""
    activity_log = UserActivityLog(
        user_id=activity_in.user_id,
        action_type=activity_in.action_type,
        details=activity_in.details,
        service_name=activity_in.service_name,
        status=activity_in.status,
    )

    db.add(activity_log)
    db.commit()
    db.refresh(activity_log)
    return activity_log


def notify(db: Session, event_name: str, payload: Mapping[str, Any]) -> None:
    """Record an SSO event for the user named in ``payload``.

    A failure to record the event is logged and never fails the sign-in
    that triggered it.
    """

    logger.info("SSO event %s for provider %s", event_name, payload.get("provider"))
    user_id = payload.get("user_id")
    if user_id is None:
        return

    try:
        create_user_activity_log(
            db,
            UserActivityLogCreate(
                user_id=user_id,
                action_type=event_name,
                details=f"Connected {payload.get('provider')} account",
                service_name=payload.get("provider"),
            ),
        )
    except Exception:
        db.rollback()
        logger.error("Failed to record %s for user %s", event_name, user_id, exc_info=True)


__all__ = ["create_user_activity_log", "get_user_activities", "notify"]
