from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class RequestOrigin:
    """Where an audited action came from."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    entry_id: int
    user_id: Optional[int]
    action: str
    details: Any
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: Optional[datetime]
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "action": self.action,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class AuditPage:
    items: Sequence[AuditEntry]
    total: int
    page: int
    limit: int

    def to_dict(self) -> dict:
        return {
            "logs": [e.to_dict() for e in self.items],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "pages": (self.total + self.limit - 1) // self.limit if self.limit else 0,
            },
        }
