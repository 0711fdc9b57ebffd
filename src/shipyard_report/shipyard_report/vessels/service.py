from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..common.validators import optional_text, require_non_empty
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..users.model import Actor
from ..users.service import require_permission
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.model import WorkOrderRow
from ..work_orders.repository import WorkOrderRepository
from .model import Vessel, VesselInput
from .repository import VesselRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VesselWorkOrders:
    vessel: Vessel
    work_orders: Sequence[WorkOrderRow]


def parse_vessel_input(form: Mapping[str, Any]) -> VesselInput:
    built_year: Optional[int] = None
    raw_year = str(form.get("built_year") or "").strip()
    if raw_year:
        try:
            built_year = int(raw_year)
        except ValueError:
            raise ValidationError("Built year must be a number")
        if built_year < 1800 or built_year > 2200:
            raise ValidationError("Built year is out of range")

    return VesselInput(
        name=require_non_empty(form.get("name"), "Vessel name"),
        type=require_non_empty(form.get("type"), "Vessel type"),
        company=require_non_empty(form.get("company"), "Company"),
        imo_number=optional_text(form.get("imo_number")),
        flag=optional_text(form.get("flag")),
        built_year=built_year,
    )


class VesselService:
    def __init__(
        self,
        vessels: VesselRepository,
        work_orders: WorkOrderRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        activity: ActivityLogService,
    ):
        self._vessels = vessels
        self._work_orders = work_orders
        self._details = details
        self._progress = progress
        self._activity = activity

    def list_vessels(self, *, search: Optional[str] = None) -> Sequence[Vessel]:
        return self._vessels.list_all(search=(search or "").strip() or None)

    def get_vessel(self, vessel_id: int) -> Vessel:
        vessel = self._vessels.get(int(vessel_id))
        if not vessel:
            raise NotFoundError("Vessel not found")
        return vessel

    def create_vessel(self, actor: Actor, form: Mapping[str, Any]) -> int:
        require_permission(actor, Permission.MANAGE_VESSELS)
        data = parse_vessel_input(form)
        vessel_id = self._vessels.create(data)
        logger.info("Vessel %s created by %s", vessel_id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="vessel",
            record_id=vessel_id,
            new=data,
            description=f"Created vessel {data.name}",
        )
        return vessel_id

    def update_vessel(self, actor: Actor, vessel_id: int, form: Mapping[str, Any]) -> None:
        require_permission(actor, Permission.MANAGE_VESSELS)
        old = self.get_vessel(vessel_id)
        data = parse_vessel_input(form)
        if not self._vessels.update(old.id, data):
            raise ValidationError("Failed to update vessel")
        logger.info("Vessel %s updated by %s", old.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="vessel",
            record_id=old.id,
            old=VesselInput(
                name=old.name,
                type=old.type,
                company=old.company,
                imo_number=old.imo_number,
                flag=old.flag,
                built_year=old.built_year,
            ),
            new=data,
            description=f"Updated vessel {data.name}",
        )

    def delete_vessel(self, actor: Actor, vessel_id: int) -> None:
        require_permission(actor, Permission.MANAGE_VESSELS)
        vessel = self.get_vessel(vessel_id)
        if self._work_orders.list_all(vessel_id=vessel.id):
            raise ValidationError("Cannot delete a vessel that still has work orders")
        self._vessels.soft_delete(vessel.id)
        logger.info("Vessel %s deleted by %s", vessel.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="vessel",
            record_id=vessel.id,
            old=vessel,
            description=f"Deleted vessel {vessel.name}",
        )

    def get_vessel_work_orders(self, vessel_id: int) -> VesselWorkOrders:
        vessel = self.get_vessel(vessel_id)
        work_orders = self._work_orders.list_all(vessel_id=vessel.id)
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        rows = [
            WorkOrderRow(
                work_order=wo,
                overall_progress=index.work_order_progress(wo.id),
                has_progress_data=index.has_progress_data(wo.id),
                detail_count=len(index.details_of(wo.id)),
            )
            for wo in work_orders
        ]
        return VesselWorkOrders(vessel=vessel, work_orders=rows)
