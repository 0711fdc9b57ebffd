from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class WorkDetails:
    id: int
    work_order_id: int
    description: str
    location: str
    work_location: str
    work_type: str
    quantity: Decimal
    uom: str
    planned_start_date: date
    target_close_date: date
    period_close_target: str
    is_additional_wo_details: bool = False
    actual_start_date: Optional[date] = None
    actual_close_date: Optional[date] = None
    pic: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class WorkDetailsInput:
    description: str
    location: str
    work_location: str
    work_type: str
    quantity: Decimal
    uom: str
    planned_start_date: date
    target_close_date: date
    period_close_target: str
    is_additional_wo_details: bool = False
    actual_start_date: Optional[date] = None
    actual_close_date: Optional[date] = None
    pic: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class WorkDetailsRow:
    details: WorkDetails
    current_progress: int
    last_report_date: Optional[date]
    is_completed: bool
