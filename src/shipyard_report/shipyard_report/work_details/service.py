from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..common.validators import optional_text
from ..common.datetime_utils import parse_iso_date
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..users.model import Actor
from ..users.service import require_permission
from ..work_orders.repository import WorkOrderRepository
from .model import WorkDetails, WorkDetailsInput, WorkDetailsRow
from .repository import WorkDetailsRepository

logger = logging.getLogger(__name__)

_REQUIRED_TEXT = (
    ("description", "Description"),
    ("location", "Location"),
    ("work_location", "Work location"),
    ("work_type", "Work type"),
    ("uom", "Unit of measure"),
    ("period_close_target", "Period close target"),
)


def _text(row: Mapping[str, Any], key: str) -> str:
    return str(row.get(key) or "").strip()


def _date_or_none(row: Mapping[str, Any], key: str, label: str, errors: list[str]):
    raw = _text(row, key)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        errors.append(f"{label} must be a valid date (YYYY-MM-DD)")
        return None


def validate_work_details_row(row: Mapping[str, Any]) -> tuple[Optional[WorkDetailsInput], list[str]]:
    """Validate one form row; returns (input or None, error messages)."""
    errors: list[str] = []
    for key, label in _REQUIRED_TEXT:
        if not _text(row, key):
            errors.append(f"{label} is required")

    quantity: Optional[Decimal] = None
    raw_qty = _text(row, "quantity")
    if not raw_qty:
        errors.append("Quantity is required")
    else:
        try:
            quantity = Decimal(raw_qty)
        except InvalidOperation:
            errors.append("Quantity must be a number")
        else:
            if not quantity.is_finite():
                errors.append("Quantity must be a number")
                quantity = None
            elif quantity <= 0:
                errors.append("Quantity must be greater than 0")

    planned = _date_or_none(row, "planned_start_date", "Planned start date", errors)
    if planned is None and not _text(row, "planned_start_date"):
        errors.append("Planned start date is required")
    target = _date_or_none(row, "target_close_date", "Target close date", errors)
    if target is None and not _text(row, "target_close_date"):
        errors.append("Target close date is required")
    if planned and target and target < planned:
        errors.append("Target close date cannot be before planned start date")

    actual_start = _date_or_none(row, "actual_start_date", "Actual start date", errors)
    actual_close = _date_or_none(row, "actual_close_date", "Actual close date", errors)
    if actual_start and actual_close and actual_close < actual_start:
        errors.append("Actual close date cannot be before actual start date")

    if errors:
        return None, errors

    return (
        WorkDetailsInput(
            description=_text(row, "description"),
            location=_text(row, "location"),
            work_location=_text(row, "work_location"),
            work_type=_text(row, "work_type"),
            quantity=quantity,
            uom=_text(row, "uom"),
            planned_start_date=planned,
            target_close_date=target,
            period_close_target=_text(row, "period_close_target"),
            is_additional_wo_details=_text(row, "is_additional_wo_details").lower() in {"1", "true", "on", "yes"},
            actual_start_date=actual_start,
            actual_close_date=actual_close,
            pic=optional_text(row.get("pic")),
            notes=optional_text(row.get("notes")),
        ),
        [],
    )


def _as_input(d: WorkDetails) -> WorkDetailsInput:
    return WorkDetailsInput(
        description=d.description,
        location=d.location,
        work_location=d.work_location,
        work_type=d.work_type,
        quantity=d.quantity,
        uom=d.uom,
        planned_start_date=d.planned_start_date,
        target_close_date=d.target_close_date,
        period_close_target=d.period_close_target,
        is_additional_wo_details=d.is_additional_wo_details,
        actual_start_date=d.actual_start_date,
        actual_close_date=d.actual_close_date,
        pic=d.pic,
        notes=d.notes,
    )


class WorkDetailsService:
    def __init__(
        self,
        details: WorkDetailsRepository,
        work_orders: WorkOrderRepository,
        progress: WorkProgressRepository,
        activity: ActivityLogService,
    ):
        self._details = details
        self._work_orders = work_orders
        self._progress = progress
        self._activity = activity

    def get_work_details(self, work_details_id: int) -> WorkDetails:
        details = self._details.get(int(work_details_id))
        if not details:
            raise NotFoundError("Work details not found")
        return details

    def add_work_details(self, actor: Actor, work_order_id: int, rows: Sequence[Mapping[str, Any]]) -> list[int]:
        require_permission(actor, Permission.MANAGE_WORK_DETAILS)
        wo = self._work_orders.get(int(work_order_id))
        if not wo:
            raise NotFoundError("Work order not found")
        if not rows:
            raise ValidationError("Add at least one work detail")

        inputs: list[WorkDetailsInput] = []
        problems: list[str] = []
        for number, row in enumerate(rows, start=1):
            data, errors = validate_work_details_row(row)
            if errors:
                problems.extend(f"Row {number}: {e}" for e in errors)
            else:
                inputs.append(data)
        if problems:
            raise ValidationError("; ".join(problems))

        ids = self._details.insert_many(wo.id, inputs, user_id=actor.user_id)
        logger.info("Added %d work details to work order %s by %s", len(ids), wo.id, actor.user_id)
        for detail_id, data in zip(ids, inputs):
            self._activity.record(
                actor,
                action=ActivityAction.CREATE,
                table_name="work_details",
                record_id=detail_id,
                new=data,
                description=f"Added work detail to {wo.shipyard_wo_number}",
            )
        return ids

    def update_work_details(self, actor: Actor, work_details_id: int, form: Mapping[str, Any]) -> None:
        require_permission(actor, Permission.MANAGE_WORK_DETAILS)
        old = self.get_work_details(work_details_id)
        data, errors = validate_work_details_row(form)
        if errors:
            raise ValidationError("; ".join(errors))
        if not self._details.update(old.id, data):
            raise ValidationError("Failed to update work details")
        logger.info("Work details %s updated by %s", old.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="work_details",
            record_id=old.id,
            old=_as_input(old),
            new=data,
            description=f"Updated work detail {data.description}",
        )

    def delete_work_details(self, actor: Actor, work_details_id: int) -> int:
        """Soft-delete; returns the work order id for redirects."""
        require_permission(actor, Permission.MANAGE_WORK_DETAILS)
        details = self.get_work_details(work_details_id)
        self._details.soft_delete(details.id)
        logger.info("Work details %s deleted by %s", details.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="work_details",
            record_id=details.id,
            old=_as_input(details),
            description=f"Deleted work detail {details.description}",
        )
        return details.work_order_id

    def list_for_work_order(self, work_order_id: int) -> Sequence[WorkDetailsRow]:
        index = load_completion(self._details, self._progress, [int(work_order_id)])
        return [
            WorkDetailsRow(
                details=d,
                current_progress=index.detail_progress(d.id),
                last_report_date=index.last_report_date(d.id),
                is_completed=index.detail_complete(d.id),
            )
            for d in index.details_of(work_order_id)
        ]
