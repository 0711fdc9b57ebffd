from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable

from ..common.datetime_utils import today_local
from ..core.constants import UPCOMING_DEADLINE_DAYS
from ..core.enums import AlertPriority
from ..invoices.repository import InvoiceRepository
from ..permits.repository import PermitRepository
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.repository import WorkOrderRepository
from .model import Alert, Dashboard, DashboardCounts

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {AlertPriority.HIGH: 0, AlertPriority.MEDIUM: 1, AlertPriority.LOW: 2}


class DashboardService:
    def __init__(
        self,
        work_orders: WorkOrderRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        permits: PermitRepository,
        invoices: InvoiceRepository,
        *,
        today: Callable[[], date] = today_local,
    ):
        self._work_orders = work_orders
        self._details = details
        self._progress = progress
        self._permits = permits
        self._invoices = invoices
        self._today = today

    def build(self) -> Dashboard:
        today = self._today()
        horizon = today + timedelta(days=UPCOMING_DEADLINE_DAYS)

        work_orders = self._work_orders.list_all()
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        permits = self._permits.list_all()
        uploaded_permit_wo = {p.work_order_id for p in permits if p.is_uploaded}
        invoiced = self._invoices.invoiced_work_order_ids()
        invoice_stats = self._invoices.stats()

        completed = in_progress = not_started = 0
        alerts: list[Alert] = []
        for wo in work_orders:
            is_complete = index.work_order_complete(wo.id)
            if is_complete:
                completed += 1
            elif index.work_order_progress(wo.id) > 0:
                in_progress += 1
            else:
                not_started += 1

            if not is_complete and wo.id not in uploaded_permit_wo:
                alerts.append(
                    Alert(
                        priority=AlertPriority.HIGH,
                        kind="missing_permit",
                        title="Missing work permit",
                        message=f"{wo.shipyard_wo_number} ({wo.vessel_name or '-'}) has no uploaded work permit",
                        work_order_id=wo.id,
                    )
                )

            for d in index.details_of(wo.id):
                if index.detail_complete(d.id):
                    continue
                target = d.target_close_date
                if target < today:
                    alerts.append(
                        Alert(
                            priority=AlertPriority.HIGH,
                            kind="overdue",
                            title="Overdue work",
                            message=(
                                f"{d.description} on {wo.shipyard_wo_number} is at "
                                f"{index.detail_progress(d.id)}%, due {target.isoformat()}"
                            ),
                            work_order_id=wo.id,
                            work_details_id=d.id,
                            due_date=target,
                        )
                    )
                elif target <= horizon:
                    alerts.append(
                        Alert(
                            priority=AlertPriority.MEDIUM,
                            kind="upcoming_deadline",
                            title="Upcoming deadline",
                            message=f"{d.description} on {wo.shipyard_wo_number} is due {target.isoformat()}",
                            work_order_id=wo.id,
                            work_details_id=d.id,
                            due_date=target,
                        )
                    )

            if is_complete and wo.id not in invoiced:
                alerts.append(
                    Alert(
                        priority=AlertPriority.LOW,
                        kind="ready_for_invoice",
                        title="Ready for invoice",
                        message=f"{wo.shipyard_wo_number} is 100% complete and not yet invoiced",
                        work_order_id=wo.id,
                    )
                )

        alerts.sort(key=lambda a: (_PRIORITY_ORDER[a.priority], a.due_date or date.max))
        counts = DashboardCounts(
            work_orders_total=len(work_orders),
            work_orders_completed=completed,
            work_orders_in_progress=in_progress,
            work_orders_not_started=not_started,
            permits_total=len(permits),
            permits_uploaded=sum(1 for p in permits if p.is_uploaded),
            invoices_paid=invoice_stats.paid,
            invoices_unpaid=invoice_stats.unpaid,
        )
        logger.debug("Dashboard built: %d work orders, %d alerts", len(work_orders), len(alerts))
        return Dashboard(counts=counts, alerts=alerts)
