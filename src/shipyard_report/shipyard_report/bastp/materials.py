"""Material usage recorded against the work details of a BASTP."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..common.validators import optional_decimal, optional_text, require_non_empty
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..users.model import Actor
from ..users.service import require_permission
from ..work_details.repository import WorkDetailsRepository
from .model import Bastp, MaterialControlView, MaterialInput, MaterialItem, MaterialUsage
from .repository import BastpRepository, MaterialRepository

logger = logging.getLogger(__name__)


def validate_material_row(row: Mapping[str, Any]) -> tuple[Optional[MaterialInput], list[str]]:
    errors: list[str] = []

    raw_id = str(row.get("material_id") or "").strip()
    material_id = int(raw_id) if raw_id.isdigit() else 0
    if material_id <= 0:
        errors.append("Select a material from the list")

    amount: Optional[Decimal] = None
    try:
        amount = optional_decimal(row.get("amount"), "Amount")
    except ValidationError as e:
        errors.append(str(e))
    else:
        if amount is None or amount <= 0:
            errors.append("Amount must be greater than 0")

    uom = str(row.get("uom") or "").strip()
    if not uom:
        errors.append("Unit of measurement is required")

    if errors:
        return None, errors
    return MaterialInput(material_id=material_id, size=optional_text(row.get("size")), amount=amount, uom=uom), []


class MaterialControlService:
    def __init__(
        self,
        materials: MaterialRepository,
        bastps: BastpRepository,
        details: WorkDetailsRepository,
        activity: ActivityLogService,
    ):
        self._materials = materials
        self._bastps = bastps
        self._details = details
        self._activity = activity

    def _bastp(self, bastp_id: int) -> Bastp:
        bastp = self._bastps.get(int(bastp_id))
        if not bastp:
            raise NotFoundError("BASTP not found")
        return bastp

    def _editable_bastp(self, bastp_id: int) -> Bastp:
        bastp = self._bastp(bastp_id)
        if bastp.is_invoiced:
            raise ValidationError("Invoiced BASTP can no longer be changed")
        return bastp

    def _require_linked(self, bastp: Bastp, work_details_id: int) -> None:
        if int(work_details_id) not in set(self._bastps.work_details_ids(bastp.id)):
            raise ValidationError("Work detail is not part of this BASTP")

    def _check_catalogue(self, rows: Sequence[MaterialInput]) -> None:
        for row in rows:
            if not self._materials.get_item(row.material_id):
                raise ValidationError("Selected material does not exist")

    def catalogue(self) -> Sequence[MaterialItem]:
        return self._materials.list_catalogue()

    def add_catalogue_item(self, actor: Actor, form: Mapping[str, Any]) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        material = require_non_empty(form.get("material"), "Material")
        specification = optional_text(form.get("specification"))
        category = optional_text(form.get("category"))
        for item in self._materials.list_catalogue():
            if item.material.lower() == material.lower() and (item.specification or "").lower() == (
                specification or ""
            ).lower():
                raise ValidationError(f"{item.label} is already in the material list")

        item_id = self._materials.add_item(material=material, specification=specification, category=category)
        logger.info("Material %s (%s) added to the list by %s", item_id, material, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="material_lists",
            record_id=item_id,
            new={"material": material, "specification": specification, "category": category},
            description=f"Added material {material}",
        )
        return item_id

    def materials_view(self, bastp_id: int, *, work_details_id: Optional[int] = None) -> MaterialControlView:
        bastp = self._bastp(bastp_id)
        ids = self._bastps.work_details_ids(bastp.id)
        details = self._details.list_by_ids(ids) if ids else []
        selected = next((d for d in details if d.id == work_details_id), None) if work_details_id else None
        return MaterialControlView(
            bastp=bastp,
            work_details=details,
            counts=self._materials.usage_counts(bastp.id),
            selected=selected,
            usages=self._materials.list_usage(bastp.id, work_details_id=selected.id) if selected else [],
        )

    def add_materials(
        self, actor: Actor, bastp_id: int, work_details_id: int, rows: Sequence[Mapping[str, Any]]
    ) -> list[int]:
        """Record every row or none; errors are reported per material number."""
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        bastp = self._editable_bastp(bastp_id)
        self._require_linked(bastp, work_details_id)
        if not rows:
            raise ValidationError("Please add at least one material")

        valid: list[MaterialInput] = []
        errors: list[str] = []
        for n, row in enumerate(rows, start=1):
            data, row_errors = validate_material_row(row)
            errors.extend(f"Material #{n}: {e}" for e in row_errors)
            if data:
                valid.append(data)
        if errors:
            raise ValidationError("; ".join(errors))
        self._check_catalogue(valid)

        ids = self._materials.insert_usage(
            bastp_id=bastp.id, work_details_id=int(work_details_id), rows=valid, user_id=actor.user_id
        )
        logger.info(
            "%d materials recorded on BASTP %s work details %s by %s", len(ids), bastp.id, work_details_id, actor.user_id
        )
        for usage_id, data in zip(ids, valid):
            self._activity.record(
                actor,
                action=ActivityAction.CREATE,
                table_name="material_control",
                record_id=usage_id,
                new={"bastp_id": bastp.id, "work_details_id": int(work_details_id), **vars(data)},
                description=f"Recorded material on BASTP {bastp.number}",
            )
        return ids

    def _usage(self, usage_id: int) -> MaterialUsage:
        usage = self._materials.get_usage(int(usage_id))
        if not usage:
            raise NotFoundError("Material record not found")
        return usage

    def update_material(self, actor: Actor, usage_id: int, form: Mapping[str, Any]) -> MaterialUsage:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        old = self._usage(usage_id)
        bastp = self._editable_bastp(old.bastp_id)
        data, errors = validate_material_row(form)
        if errors:
            raise ValidationError("; ".join(errors))
        self._check_catalogue([data])

        if not self._materials.update_usage(old.id, data):
            raise ValidationError("Failed to update material")
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="material_control",
            record_id=old.id,
            old={"material_id": old.material_id, "size": old.size, "amount": old.amount, "uom": old.uom},
            new=data,
            description=f"Updated material on BASTP {bastp.number}",
        )
        return old

    def delete_material(self, actor: Actor, usage_id: int) -> MaterialUsage:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        usage = self._usage(usage_id)
        bastp = self._editable_bastp(usage.bastp_id)
        self._materials.soft_delete_usage(usage.id)
        logger.info("Material record %s removed from BASTP %s by %s", usage.id, bastp.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="material_control",
            record_id=usage.id,
            old=usage,
            description=f"Removed material from BASTP {bastp.number}",
        )
        return usage
