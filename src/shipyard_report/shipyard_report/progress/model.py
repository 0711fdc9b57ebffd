from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence


@dataclass(frozen=True)
class WorkProgress:
    id: int
    work_details_id: int
    progress_percentage: int
    report_date: date
    notes: Optional[str] = None
    storage_path: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    reporter_name: Optional[str] = None


@dataclass(frozen=True)
class ProgressFilter:
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    vessel_id: Optional[int] = None
    vessel_ids: Optional[Sequence[int]] = None
    work_order_id: Optional[int] = None
    work_details_id: Optional[int] = None


@dataclass(frozen=True)
class ProgressListRow:
    progress: WorkProgress
    work_details_description: str
    work_details_location: Optional[str]
    work_order_id: int
    shipyard_wo_number: str
    vessel_id: int
    vessel_name: str


@dataclass(frozen=True)
class DetailProgress:
    work_details_id: int
    description: str
    current_progress: int
    last_report_date: Optional[date]
    is_completed: bool


@dataclass(frozen=True)
class WorkOrderProgressSummary:
    work_order_id: int
    details: Sequence[DetailProgress]
    overall_progress: int
    is_completed: bool


@dataclass(frozen=True)
class ProgressStats:
    total_work_orders: int
    completed_work_orders: int
    total_work_details: int
    completed_work_details: int
    average_progress: int
    details_with_evidence: int
