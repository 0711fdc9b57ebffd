from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..activity_log.service import ActivityLogService
from ..common.pagination import Page, paginate
from ..common.validators import optional_date, optional_text, require_date, require_non_empty, require_positive_id
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..users.model import Actor
from ..users.service import require_permission
from ..vessels.repository import VesselRepository
from ..work_details.repository import WorkDetailsRepository
from .model import WorkOrder, WorkOrderInput, WorkOrderRow
from .repository import WorkOrderRepository

logger = logging.getLogger(__name__)


def _truthy(value: Any) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "on", "yes"}


def parse_work_order_input(form: Mapping[str, Any]) -> WorkOrderInput:
    return WorkOrderInput(
        vessel_id=require_positive_id(form.get("vessel_id"), "Vessel"),
        shipyard_wo_number=require_non_empty(form.get("shipyard_wo_number"), "Shipyard WO number"),
        shipyard_wo_date=require_date(form.get("shipyard_wo_date"), "Shipyard WO date"),
        customer_wo_number=optional_text(form.get("customer_wo_number")),
        customer_wo_date=optional_date(form.get("customer_wo_date"), "Customer WO date"),
        work_type=optional_text(form.get("work_type")),
        work_location=optional_text(form.get("work_location")),
        is_additional_wo=_truthy(form.get("is_additional_wo")),
        wo_document_delivery_date=optional_date(form.get("wo_document_delivery_date"), "WO document delivery date"),
    )


def _as_input(wo: WorkOrder) -> WorkOrderInput:
    return WorkOrderInput(
        vessel_id=wo.vessel_id,
        shipyard_wo_number=wo.shipyard_wo_number,
        shipyard_wo_date=wo.shipyard_wo_date,
        customer_wo_number=wo.customer_wo_number,
        customer_wo_date=wo.customer_wo_date,
        work_type=wo.work_type,
        work_location=wo.work_location,
        is_additional_wo=wo.is_additional_wo,
        wo_document_delivery_date=wo.wo_document_delivery_date,
    )


class WorkOrderService:
    def __init__(
        self,
        work_orders: WorkOrderRepository,
        vessels: VesselRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        activity: ActivityLogService,
    ):
        self._work_orders = work_orders
        self._vessels = vessels
        self._details = details
        self._progress = progress
        self._activity = activity

    def get_work_order(self, work_order_id: int) -> WorkOrder:
        wo = self._work_orders.get(int(work_order_id))
        if not wo:
            raise NotFoundError("Work order not found")
        return wo

    def _require_vessel(self, vessel_id: int) -> None:
        if not self._vessels.get(int(vessel_id)):
            raise ValidationError("Selected vessel does not exist")

    def create_work_order(self, actor: Actor, form: Mapping[str, Any]) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        data = parse_work_order_input(form)
        self._require_vessel(data.vessel_id)

        wo_id = self._work_orders.create(data, user_id=actor.user_id)
        logger.info("Work order %s (%s) created by %s", wo_id, data.shipyard_wo_number, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="work_order",
            record_id=wo_id,
            new=data,
            description=f"Created work order {data.shipyard_wo_number}",
        )
        return wo_id

    def update_work_order(self, actor: Actor, work_order_id: int, form: Mapping[str, Any]) -> None:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        old = self.get_work_order(work_order_id)
        data = parse_work_order_input(form)
        self._require_vessel(data.vessel_id)

        if not self._work_orders.update(old.id, data):
            raise ValidationError("Failed to update work order")
        logger.info("Work order %s updated by %s", old.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="work_order",
            record_id=old.id,
            old=_as_input(old),
            new=data,
            description=f"Updated work order {data.shipyard_wo_number}",
        )

    def delete_work_order(self, actor: Actor, work_order_id: int) -> None:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        wo = self.get_work_order(work_order_id)
        self._work_orders.soft_delete(wo.id)
        logger.info("Work order %s deleted by %s", wo.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="work_order",
            record_id=wo.id,
            old=_as_input(wo),
            description=f"Deleted work order {wo.shipyard_wo_number}",
        )

    def list_work_orders(
        self,
        *,
        search: Optional[str] = None,
        vessel_id: Optional[int] = None,
        page=1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[WorkOrderRow]:
        work_orders = self._work_orders.list_all(
            search=(search or "").strip() or None,
            vessel_id=int(vessel_id) if vessel_id else None,
        )
        current = paginate(work_orders, page, page_size)
        index = load_completion(self._details, self._progress, [wo.id for wo in current.items])
        rows = [
            WorkOrderRow(
                work_order=wo,
                overall_progress=index.work_order_progress(wo.id),
                has_progress_data=index.has_progress_data(wo.id),
                detail_count=len(index.details_of(wo.id)),
            )
            for wo in current.items
        ]
        return Page(items=rows, page=current.page, page_size=current.page_size, total=current.total)
