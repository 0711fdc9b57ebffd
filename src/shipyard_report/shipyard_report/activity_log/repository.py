from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from ..core.enums import ActivityAction
from .model import ActivityLog, ActivityLogFilter


class ActivityLogRepository(Protocol):
    def insert(
        self,
        *,
        user_id: int,
        user_name: str,
        user_email: str,
        action: ActivityAction,
        table_name: str,
        record_id: int,
        old_data: Optional[dict[str, Any]],
        new_data: Optional[dict[str, Any]],
        changes: Optional[dict[str, Any]],
        ip_address: Optional[str],
        user_agent: Optional[str],
        description: Optional[str],
    ) -> int:
        raise NotImplementedError

    def search(self, flt: ActivityLogFilter, *, limit: int, offset: int) -> tuple[Sequence[ActivityLog], int]:
        """Return (page of logs newest first, total matching count)."""

        raise NotImplementedError

    def list_for_record(self, *, table_name: str, record_id: int) -> Sequence[ActivityLog]:
        raise NotImplementedError
