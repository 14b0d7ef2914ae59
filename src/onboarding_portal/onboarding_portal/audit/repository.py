from __future__ import annotations

from typing import Any, Optional, Protocol

from .model import AuditPage


class AuditRepository(Protocol):
    """Append-only: there is deliberately no update or delete."""

    def append(
        self,
        *,
        user_id: Optional[int],
        action: str,
        details: Any,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> int:
        raise NotImplementedError

    def list_page(
        self,
        *,
        page: int,
        limit: int,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
    ) -> AuditPage:
        raise NotImplementedError
