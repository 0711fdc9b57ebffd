from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import ActivityAction


@dataclass(frozen=True)
class ActivityLog:
    id: int
    user_id: int
    user_name: str
    user_email: str
    action: ActivityAction
    table_name: str
    record_id: int
    old_data: Optional[dict[str, Any]]
    new_data: Optional[dict[str, Any]]
    changes: Optional[dict[str, dict[str, Any]]]
    ip_address: Optional[str]
    user_agent: Optional[str]
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ActivityLogFilter:
    user_id: Optional[int] = None
    table_name: Optional[str] = None
    action: Optional[ActivityAction] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
