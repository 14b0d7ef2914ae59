from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import Session


class SessionRepository(Protocol):
    def create(
        self,
        *,
        token_hash: str,
        user_id: int,
        created_at: datetime,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        raise NotImplementedError

    def revoke(self, token_hash: str, *, revoked_at: datetime) -> bool:
        raise NotImplementedError

    def revoke_all_for_user(self, user_id: int, *, revoked_at: datetime) -> int:
        raise NotImplementedError

    def purge_expired(self, *, now: datetime) -> int:
        raise NotImplementedError
