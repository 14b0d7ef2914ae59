from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SESSION_TTL_HOURS
from ..core.exceptions import AuthenticationError
from .model import IssuedSession
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionService:
    """Opaque bearer tokens backed by the `sessions` table.

    Tokens survive restarts, expire after `ttl_hours` and can be revoked
    individually or per user.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        *,
        ttl_hours: int = DEFAULT_SESSION_TTL_HOURS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._ttl = timedelta(hours=int(ttl_hours))
        self._clock = clock

    def issue(self, user_id: int, *, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> IssuedSession:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        expires_at = now + self._ttl
        self._sessions.create(
            token_hash=hash_token(token),
            user_id=int(user_id),
            created_at=now,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return IssuedSession(token=token, expires_at=expires_at)

    def validate(self, token: Optional[str]) -> int:
        """Resolve a token to its user id or raise AuthenticationError."""
        if not token:
            raise AuthenticationError("Access token required")

        session = self._sessions.get_by_token_hash(hash_token(token))
        if not session:
            raise AuthenticationError("Invalid or expired token")
        if session.revoked_at is not None:
            raise AuthenticationError("Session has been revoked")
        if not session.is_active(self._clock()):
            raise AuthenticationError("Session expired")
        return session.user_id

    def revoke(self, token: Optional[str]) -> None:
        if token:
            self._sessions.revoke(hash_token(token), revoked_at=self._clock())

    def refresh(self, token: str, *, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> IssuedSession:
        user_id = self.validate(token)
        self.revoke(token)
        return self.issue(user_id, ip_address=ip_address, user_agent=user_agent)

    def revoke_all(self, user_id: int) -> int:
        count = self._sessions.revoke_all_for_user(int(user_id), revoked_at=self._clock())
        if count:
            logger.info("revoked %d session(s) for user %s", count, user_id)
        return count

    def purge_expired(self) -> int:
        return self._sessions.purge_expired(now=self._clock())
