from __future__ import annotations

import logging
from typing import Any, Optional

from ..common.validators import require_hr
from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import AuditPage, RequestOrigin
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, audit: AuditRepository):
        self._audit = audit

    def record(
        self,
        actor_id: Optional[int],
        action: str,
        details: Any = None,
        *,
        origin: Optional[RequestOrigin] = None,
    ) -> int:
        origin = origin or RequestOrigin()
        entry_id = self._audit.append(
            user_id=int(actor_id) if actor_id is not None else None,
            action=action,
            details=details,
            ip_address=origin.ip_address,
            user_agent=origin.user_agent,
        )
        logger.info("audit %s by user %s", action, actor_id)
        return entry_id

    def list(
        self,
        *,
        current_role: Role,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> AuditPage:
        require_hr(current_role)
        page, limit = int(page), int(limit)
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")
        return self._audit.list_page(
            page=page,
            limit=min(limit, MAX_PAGE_LIMIT),
            user_id=user_id,
            action=(action or "").strip() or None,
        )
