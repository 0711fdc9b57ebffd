from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional

from ..common.pagination import Page, clamp_page
from ..core.constants import ACTIVITY_LOG_PAGE_SIZE
from ..core.enums import ActivityAction, Permission
from ..core.permissions import has_permission
from ..core.exceptions import AuthorizationError
from ..users.model import Actor
from .model import ActivityLog, ActivityLogFilter
from .repository import ActivityLogRepository

logger = logging.getLogger(__name__)


def snapshot(obj: Any) -> Optional[dict[str, Any]]:
    """JSON-friendly dict of a record (dataclass or mapping)."""
    if obj is None:
        return None
    data = asdict(obj) if is_dataclass(obj) else dict(obj)
    return json.loads(json.dumps(data, default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def diff_changes(old: Optional[Mapping[str, Any]], new: Optional[Mapping[str, Any]]) -> Optional[dict[str, dict[str, Any]]]:
    """Keys of `new` whose JSON value differs from `old`; None unless both sides exist."""
    if old is None or new is None:
        return None
    changes: dict[str, dict[str, Any]] = {}
    for key, new_value in new.items():
        old_value = old.get(key)
        if json.dumps(old_value, sort_keys=True, default=str) != json.dumps(new_value, sort_keys=True, default=str):
            changes[key] = {"old": old_value, "new": new_value}
    return changes


class ActivityLogService:
    def __init__(self, logs: ActivityLogRepository):
        self._logs = logs

    def record(
        self,
        actor: Actor,
        *,
        action: ActivityAction,
        table_name: str,
        record_id: int,
        old: Any = None,
        new: Any = None,
        description: Optional[str] = None,
    ) -> None:
        """Write an audit entry. Never raises: auditing must not break the operation."""
        try:
            old_data = snapshot(old)
            new_data = snapshot(new)
            self._logs.insert(
                user_id=actor.user_id,
                user_name=actor.name,
                user_email=actor.email,
                action=action,
                table_name=table_name,
                record_id=int(record_id),
                old_data=old_data,
                new_data=new_data,
                changes=diff_changes(old_data, new_data),
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
                description=description,
            )
        except Exception:
            logger.exception("Failed to write activity log for %s #%s", table_name, record_id)

    def list_logs(self, actor: Actor, flt: ActivityLogFilter, *, page=1) -> Page[ActivityLog]:
        # Users without the reports permission only see their own trail.
        if not has_permission(actor.role, Permission.VIEW_ALL_REPORTS):
            flt = ActivityLogFilter(
                user_id=actor.user_id,
                table_name=flt.table_name,
                action=flt.action,
                start_date=flt.start_date,
                end_date=flt.end_date,
            )
        page, offset = clamp_page(page, ACTIVITY_LOG_PAGE_SIZE)
        items, total = self._logs.search(flt, limit=ACTIVITY_LOG_PAGE_SIZE, offset=offset)
        return Page(items=items, page=page, page_size=ACTIVITY_LOG_PAGE_SIZE, total=total)

    def history(self, actor: Actor, *, table_name: str, record_id: int):
        if not has_permission(actor.role, Permission.VIEW_ALL_REPORTS):
            raise AuthorizationError("You do not have permission to view this history")
        return self._logs.list_for_record(table_name=table_name, record_id=int(record_id))
