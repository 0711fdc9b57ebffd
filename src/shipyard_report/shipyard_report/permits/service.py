from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..core.constants import PERMIT_BUCKET
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..storage.document_store import LocalDocumentStore, lifetime_for
from ..storage.file_rules import sanitize_filename, validate_permit_file
from ..storage.model import UploadedFile
from ..users.model import Actor
from ..users.service import require_permission
from ..work_orders.repository import WorkOrderRepository
from .model import PermitToWork
from .repository import PermitRepository

logger = logging.getLogger(__name__)


class PermitService:
    """Permit-to-work documents. A work order has at most one live permit."""

    def __init__(
        self,
        permits: PermitRepository,
        work_orders: WorkOrderRepository,
        store: LocalDocumentStore,
        activity: ActivityLogService,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._permits = permits
        self._work_orders = work_orders
        self._store = store
        self._activity = activity
        self._clock = clock

    def get_permit(self, permit_id: int) -> PermitToWork:
        permit = self._permits.get(int(permit_id))
        if not permit:
            raise NotFoundError("Work permit not found")
        return permit

    def list_permits(self, *, search: Optional[str] = None) -> Sequence[PermitToWork]:
        return self._permits.list_all(search=(search or "").strip() or None)

    def permit_for_work_order(self, work_order_id: int) -> Optional[PermitToWork]:
        return self._permits.get_for_work_order(int(work_order_id))

    def _remove_file(self, path: str) -> None:
        try:
            self._store.remove(PERMIT_BUCKET, path)
        except StorageError:
            logger.warning("Could not remove permit file %s", path)

    def upload_permit(self, actor: Actor, work_order_id: int, file: Optional[UploadedFile]) -> int:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        wo = self._work_orders.get(int(work_order_id))
        if not wo:
            raise NotFoundError("Work order not found")
        file = validate_permit_file(file)

        stamp = int(self._clock() * 1000)
        path = f"wo-{wo.id}/permit-{wo.id}-{stamp}-{sanitize_filename(file.filename)}"
        self._store.upload(PERMIT_BUCKET, path, file.data)

        existing = self._permits.get_for_work_order(wo.id)
        try:
            if existing:
                if not self._permits.replace_file(
                    existing.id, storage_path=path, original_name=file.filename, user_id=actor.user_id
                ):
                    raise ValidationError("Failed to update work permit")
                permit_id = existing.id
            else:
                permit_id = self._permits.insert(
                    work_order_id=wo.id, storage_path=path, original_name=file.filename, user_id=actor.user_id
                )
        except Exception:
            self._remove_file(path)
            raise

        if existing:
            self._remove_file(existing.storage_path)
            logger.info("Permit %s replaced for work order %s by %s", permit_id, wo.id, actor.user_id)
            self._activity.record(
                actor,
                action=ActivityAction.UPDATE,
                table_name="permit_to_work",
                record_id=permit_id,
                old={"storage_path": existing.storage_path, "original_name": existing.original_name},
                new={"storage_path": path, "original_name": file.filename},
                description=f"Replaced work permit for {wo.shipyard_wo_number}",
            )
        else:
            logger.info("Permit %s uploaded for work order %s by %s", permit_id, wo.id, actor.user_id)
            self._activity.record(
                actor,
                action=ActivityAction.CREATE,
                table_name="permit_to_work",
                record_id=permit_id,
                new={"work_order_id": wo.id, "storage_path": path, "original_name": file.filename},
                description=f"Uploaded work permit for {wo.shipyard_wo_number}",
            )
        return permit_id

    def delete_permit(self, actor: Actor, permit_id: int) -> None:
        require_permission(actor, Permission.MANAGE_WORK_ORDERS)
        permit = self.get_permit(permit_id)
        self._permits.soft_delete(permit.id)
        self._remove_file(permit.storage_path)
        logger.info("Permit %s deleted by %s", permit.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="permit_to_work",
            record_id=permit.id,
            old=permit,
            description=f"Deleted work permit for {permit.shipyard_wo_number or permit.work_order_id}",
        )

    def permit_token(self, permit_id: int, *, purpose: str = "view") -> str:
        permit = self.get_permit(permit_id)
        return self._store.create_signed_token(PERMIT_BUCKET, permit.storage_path, lifetime_for(purpose))
