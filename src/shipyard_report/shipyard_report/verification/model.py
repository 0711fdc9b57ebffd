from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..work_details.model import WorkDetails
from ..work_orders.model import WorkOrder


@dataclass(frozen=True)
class WorkVerification:
    id: int
    work_details_id: int
    work_verification: bool
    verification_date: date
    verification_notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # joined
    work_details_description: Optional[str] = None
    work_order_id: Optional[int] = None
    shipyard_wo_number: Optional[str] = None
    vessel_name: Optional[str] = None
    verifier_name: Optional[str] = None


@dataclass(frozen=True)
class OperationVerification:
    id: int
    work_order_id: int
    progress_verification: bool
    verification_date: date
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # joined
    shipyard_wo_number: Optional[str] = None
    vessel_name: Optional[str] = None
    verifier_name: Optional[str] = None


@dataclass(frozen=True)
class PendingWorkVerification:
    """A work detail at 100 % that nobody has verified yet."""

    work_order: WorkOrder
    details: WorkDetails
    current_progress: int
    last_report_date: Optional[date]


@dataclass(frozen=True)
class PendingOperationVerification:
    work_order: WorkOrder
    overall_progress: int
    detail_count: int
