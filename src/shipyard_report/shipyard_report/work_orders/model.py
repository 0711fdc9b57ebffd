from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class WorkOrder:
    id: int
    vessel_id: int
    shipyard_wo_number: str
    shipyard_wo_date: date
    customer_wo_number: Optional[str] = None
    customer_wo_date: Optional[date] = None
    work_type: Optional[str] = None
    work_location: Optional[str] = None
    is_additional_wo: bool = False
    wo_document_delivery_date: Optional[date] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # joined from vessel
    vessel_name: Optional[str] = None
    vessel_type: Optional[str] = None
    vessel_company: Optional[str] = None


@dataclass(frozen=True)
class WorkOrderInput:
    vessel_id: int
    shipyard_wo_number: str
    shipyard_wo_date: date
    customer_wo_number: Optional[str] = None
    customer_wo_date: Optional[date] = None
    work_type: Optional[str] = None
    work_location: Optional[str] = None
    is_additional_wo: bool = False
    wo_document_delivery_date: Optional[date] = None


@dataclass(frozen=True)
class WorkOrderRow:
    """A work order as listed on screens, with its derived progress."""

    work_order: WorkOrder
    overall_progress: int
    has_progress_data: bool
    detail_count: int
