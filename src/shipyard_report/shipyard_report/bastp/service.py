from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..common.datetime_utils import now_local
from ..common.validators import optional_decimal, optional_text, require_date, require_non_empty, require_positive_id
from ..core.constants import BASTP_BUCKET, DOWNLOAD_URL_SECONDS
from ..core.enums import ActivityAction, BastpStatus, Permission
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..storage.document_store import LocalDocumentStore
from ..storage.file_rules import sanitize_filename, validate_bastp_file
from ..storage.model import UploadedFile
from ..users.model import Actor
from ..users.service import require_permission
from ..vessels.repository import VesselRepository
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.repository import WorkOrderRepository
from .model import Bastp, BastpInput, BastpView, GeneralServiceType
from .repository import BastpRepository, GeneralServiceRepository

logger = logging.getLogger(__name__)

# INVOICED is only reached through invoicing.
NEXT_STATUS = {
    BastpStatus.DRAFT: BastpStatus.VERIFIED,
    BastpStatus.VERIFIED: BastpStatus.READY_FOR_INVOICE,
}


def parse_bastp_input(form: Mapping[str, Any]) -> BastpInput:
    bastp_date = require_date(form.get("date"), "BASTP date")
    delivery_date = require_date(form.get("delivery_date"), "Delivery date")
    if delivery_date < bastp_date:
        raise ValidationError("Delivery date cannot be before the BASTP date")
    return BastpInput(
        number=require_non_empty(form.get("number"), "BASTP number"),
        date=bastp_date,
        delivery_date=delivery_date,
        vessel_id=require_positive_id(form.get("vessel_id"), "Vessel"),
    )


def service_payment(total_days: int, unit_price: Decimal) -> Decimal:
    return Decimal(int(total_days)) * unit_price


class BastpService:
    def __init__(
        self,
        bastps: BastpRepository,
        services: GeneralServiceRepository,
        vessels: VesselRepository,
        work_orders: WorkOrderRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        store: LocalDocumentStore,
        activity: ActivityLogService,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._bastps = bastps
        self._services = services
        self._vessels = vessels
        self._work_orders = work_orders
        self._details = details
        self._progress = progress
        self._store = store
        self._activity = activity
        self._clock = clock

    def get_bastp(self, bastp_id: int) -> Bastp:
        bastp = self._bastps.get(int(bastp_id))
        if not bastp:
            raise NotFoundError("BASTP not found")
        return bastp

    def list_bastps(self, *, status: Optional[str] = None) -> Sequence[Bastp]:
        flt = None
        if status:
            try:
                flt = BastpStatus(status)
            except ValueError:
                raise ValidationError("Unknown BASTP status")
        return self._bastps.list_all(status=flt)

    def ready_for_invoice(self, *, vessel_id: Optional[int] = None) -> Sequence[Bastp]:
        return [
            b
            for b in self._bastps.list_all(status=BastpStatus.READY_FOR_INVOICE, vessel_id=vessel_id)
            if not b.is_invoiced
        ]

    def service_types(self) -> Sequence[GeneralServiceType]:
        return self._services.list_types()

    def bastp_view(self, bastp_id: int) -> BastpView:
        bastp = self.get_bastp(bastp_id)
        ids = self._bastps.work_details_ids(bastp.id)
        services = self._services.list_for_bastp(bastp.id)
        return BastpView(
            bastp=bastp,
            work_details=self._details.list_by_ids(ids) if ids else [],
            services=services,
            services_total=sum((s.payment_price for s in services), Decimal("0")),
        )

    def eligible_work_details(self, vessel_id: int):
        """Completed work details of the vessel not yet attached to a BASTP."""
        work_orders = self._work_orders.list_all(vessel_id=int(vessel_id))
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        linked = self._bastps.linked_work_details_ids()
        return [
            d
            for wo in work_orders
            for d in index.details_of(wo.id)
            if index.detail_complete(d.id) and d.id not in linked
        ]

    def create_bastp(self, actor: Actor, form: Mapping[str, Any], work_details_ids: Sequence[Any]) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        data = parse_bastp_input(form)
        if not self._vessels.get(data.vessel_id):
            raise ValidationError("Selected vessel does not exist")

        try:
            ids = sorted({int(i) for i in work_details_ids})
        except (TypeError, ValueError):
            raise ValidationError("Invalid work detail selection")
        if not ids:
            raise ValidationError("Select at least one completed work detail")

        eligible = {d.id for d in self.eligible_work_details(data.vessel_id)}
        not_eligible = [i for i in ids if i not in eligible]
        if not_eligible:
            raise ValidationError(
                "Only completed work details of this vessel that are not in another BASTP can be added"
            )

        bastp_id = self._bastps.create(data, work_details_ids=ids, user_id=actor.user_id)
        logger.info("BASTP %s (%s) created with %d work details by %s", bastp_id, data.number, len(ids), actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="bastp",
            record_id=bastp_id,
            new={"number": data.number, "date": data.date, "vessel_id": data.vessel_id, "work_details_ids": ids},
            description=f"Created BASTP {data.number}",
        )
        return bastp_id

    def upload_document(self, actor: Actor, bastp_id: int, file: Optional[UploadedFile]) -> None:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        bastp = self.get_bastp(bastp_id)
        file = validate_bastp_file(file)

        stamp = int(self._clock() * 1000)
        path = f"bastp-{bastp.id}/{stamp}-{sanitize_filename(file.filename)}"
        self._store.upload(BASTP_BUCKET, path, file.data)
        if not self._bastps.set_document(bastp.id, storage_path=path, uploaded_at=now_local()):
            self._store.remove(BASTP_BUCKET, path)
            raise ValidationError("Failed to attach BASTP document")

        if bastp.storage_path:
            try:
                self._store.remove(BASTP_BUCKET, bastp.storage_path)
            except StorageError:
                logger.warning("Could not remove previous BASTP document %s", bastp.storage_path)

        logger.info("BASTP %s document uploaded by %s", bastp.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="bastp",
            record_id=bastp.id,
            old={"storage_path": bastp.storage_path},
            new={"storage_path": path},
            description=f"Uploaded document for BASTP {bastp.number}",
        )

    def advance_status(self, actor: Actor, bastp_id: int, *, notes: Optional[str] = None) -> BastpStatus:
        require_permission(actor, Permission.VERIFY_WORK)
        bastp = self.get_bastp(bastp_id)
        target = NEXT_STATUS.get(bastp.status)
        if target is None:
            raise ValidationError(f"BASTP in status {bastp.status.value} cannot be advanced")
        if target == BastpStatus.READY_FOR_INVOICE and not bastp.storage_path:
            raise ValidationError("Upload the signed BASTP document before marking it ready for invoice")

        self._bastps.set_status(bastp.id, status=target, notes=optional_text(notes))
        logger.info("BASTP %s %s -> %s by %s", bastp.id, bastp.status.value, target.value, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="bastp",
            record_id=bastp.id,
            old={"status": bastp.status.value},
            new={"status": target.value},
            description=f"BASTP {bastp.number} moved to {target.value}",
        )
        return target

    def save_general_service(self, actor: Actor, bastp_id: int, form: Mapping[str, Any]) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        bastp = self.get_bastp(bastp_id)
        if bastp.is_invoiced:
            raise ValidationError("Invoiced BASTP can no longer be changed")

        type_id = require_positive_id(form.get("service_type_id"), "Service type")
        if not self._services.get_type(type_id):
            raise ValidationError("Unknown service type")
        try:
            total_days = int(str(form.get("total_days") or "0").strip())
        except ValueError:
            raise ValidationError("Total days must be a whole number")
        if total_days < 0:
            raise ValidationError("Total days cannot be negative")
        unit_price = optional_decimal(form.get("unit_price"), "Unit price") or Decimal("0")
        payment = service_payment(total_days, unit_price)

        service_id = self._services.save(
            bastp_id=bastp.id,
            service_type_id=type_id,
            total_days=total_days,
            unit_price=unit_price,
            payment_price=payment,
            remarks=optional_text(form.get("remarks")),
        )
        logger.info("General service %s saved on BASTP %s by %s", service_id, bastp.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="general_services",
            record_id=service_id,
            new={"service_type_id": type_id, "total_days": total_days, "unit_price": unit_price, "payment_price": payment},
            description=f"Saved general service on BASTP {bastp.number}",
        )
        return service_id

    def delete_general_service(self, actor: Actor, service_id: int) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        service = self._services.get(int(service_id))
        if not service:
            raise NotFoundError("General service not found")
        bastp = self.get_bastp(service.bastp_id)
        if bastp.is_invoiced:
            raise ValidationError("Invoiced BASTP can no longer be changed")
        self._services.delete(service.id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="general_services",
            record_id=service.id,
            old=service,
            description=f"Removed general service from BASTP {bastp.number}",
        )
        return bastp.id

    def delete_bastp(self, actor: Actor, bastp_id: int) -> None:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        bastp = self.get_bastp(bastp_id)
        if bastp.is_invoiced or bastp.status == BastpStatus.INVOICED:
            raise ValidationError("Invoiced BASTP cannot be deleted")
        self._bastps.soft_delete(bastp.id)
        logger.info("BASTP %s deleted by %s", bastp.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="bastp",
            record_id=bastp.id,
            old=bastp,
            description=f"Deleted BASTP {bastp.number}",
        )

    def document_token(self, bastp_id: int) -> str:
        bastp = self.get_bastp(bastp_id)
        if not bastp.storage_path:
            raise NotFoundError("No document uploaded for this BASTP")
        return self._store.create_signed_token(BASTP_BUCKET, bastp.storage_path, DOWNLOAD_URL_SECONDS)
