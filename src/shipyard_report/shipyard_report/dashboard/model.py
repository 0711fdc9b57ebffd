from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..core.enums import AlertPriority


@dataclass(frozen=True)
class DashboardCounts:
    work_orders_total: int
    work_orders_completed: int
    work_orders_in_progress: int
    work_orders_not_started: int
    permits_total: int
    permits_uploaded: int
    invoices_paid: int
    invoices_unpaid: int


@dataclass(frozen=True)
class Alert:
    priority: AlertPriority
    kind: str
    title: str
    message: str
    work_order_id: Optional[int] = None
    work_details_id: Optional[int] = None
    due_date: Optional[date] = None


@dataclass(frozen=True)
class Dashboard:
    counts: DashboardCounts
    alerts: Sequence[Alert]
