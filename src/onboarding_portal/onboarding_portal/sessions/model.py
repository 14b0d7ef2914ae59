from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Session:
    """Server-side record of an issued bearer token (only its hash is stored)."""

    session_id: int
    token_hash: str
    user_id: int
    created_at: datetime
    expires_at: datetime
    revoked_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and now < self.expires_at


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime
