"""Session-scoped, read-once storage bridging a browser redirect."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, MutableMapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from forum_sso.core.config import settings
from forum_sso.models.sso_stash_entry import SsoStashEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStash:
    """Keyed holder whose values are removed by the first read.

    Values are stored server side in ``sso_stash_entries``; the session only
    keeps the random id of each entry, so a stash can never be read from
    another browser's request and the cookie size does not depend on the
    stored value. Writing a key replaces whatever was there.
    """

    prefix = "sso_stash:"

    def __init__(
        self,
        session: MutableMapping[str, Any],
        db: Session,
        *,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._session = session
        self._db = db
        self._ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.sso_stash_ttl_seconds
        )

    def _slot(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _entry(self, entry_id: Any) -> Optional[SsoStashEntry]:
        if not isinstance(entry_id, str):
            return None
        stmt = select(SsoStashEntry).where(
            SsoStashEntry.id == entry_id,
            SsoStashEntry.expires_at > _utcnow(),
        )
        return self._db.execute(stmt).scalar_one_or_none()

    def purge_expired(self) -> int:
        """Delete entries nobody came back for and return how many went."""
        result = self._db.execute(
            delete(SsoStashEntry).where(SsoStashEntry.expires_at <= _utcnow()),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount or 0

    def put(self, key: str, value: Any) -> Optional[Any]:
        """Store ``value`` under ``key`` and return the value it replaced."""
        previous = self.take(key)
        purged = self.purge_expired()
        if purged:
            logger.debug("Purged %d expired stash entries", purged)

        entry = SsoStashEntry(
            id=secrets.token_urlsafe(32),
            stash_key=key,
            payload=value,
            expires_at=_utcnow() + self._ttl,
        )
        self._db.add(entry)
        self._db.commit()
        self._session[self._slot(key)] = entry.id
        return previous

    def take(self, key: str) -> Optional[Any]:
        """Return and clear the value under ``key``."""
        entry_id = self._session.pop(self._slot(key), None)
        if entry_id is None:
            return None

        entry = self._entry(entry_id)
        if entry is None:
            return None

        value = entry.payload
        self._db.delete(entry)
        self._db.commit()
        return value

    def clear(self, key: str) -> None:
        self.take(key)

    def __contains__(self, key: str) -> bool:
        return self._entry(self._session.get(self._slot(key))) is not None


__all__ = ["SessionStash"]
