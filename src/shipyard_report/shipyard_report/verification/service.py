from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..common.validators import optional_text, require_date
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..users.model import Actor
from ..users.service import require_permission
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.repository import WorkOrderRepository
from .model import (
    OperationVerification,
    PendingOperationVerification,
    PendingWorkVerification,
    WorkVerification,
)
from .repository import OperationVerificationRepository, WorkVerificationRepository

logger = logging.getLogger(__name__)


class VerificationService:
    """Work-level and operation-level sign-off.

    Both levels require 100 % completion and refuse a second live
    verification. The check and the insert are separate statements.
    """

    def __init__(
        self,
        work_verifications: WorkVerificationRepository,
        operation_verifications: OperationVerificationRepository,
        work_orders: WorkOrderRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        activity: ActivityLogService,
    ):
        self._work_verifications = work_verifications
        self._operation_verifications = operation_verifications
        self._work_orders = work_orders
        self._details = details
        self._progress = progress
        self._activity = activity

    # -- work level --------------------------------------------------------

    def verify_work_details(
        self,
        actor: Actor,
        work_details_id: int,
        *,
        verification_date: Optional[str | date],
        notes: Optional[str] = None,
    ) -> int:
        require_permission(actor, Permission.VERIFY_WORK)
        details = self._details.get(int(work_details_id))
        if not details:
            raise NotFoundError("Work details not found")
        verified_on = require_date(verification_date, "Verification date")

        index = load_completion(self._details, self._progress, [details.work_order_id])
        progress = index.detail_progress(details.id)
        if not index.detail_complete(details.id):
            raise ValidationError(f"Work must be 100% complete before verification (currently {progress}%)")
        if self._work_verifications.get_active_for_details(details.id):
            raise ValidationError("This work has already been verified")

        verification_id = self._work_verifications.insert(
            work_details_id=details.id,
            verification_date=verified_on,
            notes=optional_text(notes),
            user_id=actor.user_id,
        )
        logger.info("Work details %s verified by %s", details.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="work_verification",
            record_id=verification_id,
            new={"work_details_id": details.id, "verification_date": verified_on, "notes": optional_text(notes)},
            description=f"Verified work detail {details.description}",
        )
        return verification_id

    def remove_work_verification(self, actor: Actor, verification_id: int) -> None:
        require_permission(actor, Permission.VERIFY_WORK)
        verification = self._work_verifications.get(int(verification_id))
        if not verification:
            raise NotFoundError("Verification not found")
        self._work_verifications.soft_delete(verification.id)
        logger.info("Work verification %s removed by %s", verification.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="work_verification",
            record_id=verification.id,
            old=verification,
            description="Removed work verification",
        )

    def list_work_pending(self) -> Sequence[PendingWorkVerification]:
        work_orders = self._work_orders.list_all()
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        verified = {v.work_details_id for v in self._work_verifications.list_active()}

        pending: list[PendingWorkVerification] = []
        for wo in work_orders:
            for d in index.details_of(wo.id):
                if d.id in verified or not index.detail_complete(d.id):
                    continue
                pending.append(
                    PendingWorkVerification(
                        work_order=wo,
                        details=d,
                        current_progress=index.detail_progress(d.id),
                        last_report_date=index.last_report_date(d.id),
                    )
                )
        return pending

    def list_work_verified(self) -> Sequence[WorkVerification]:
        return self._work_verifications.list_active()

    # -- operation level ---------------------------------------------------

    def verify_operation(self, actor: Actor, work_order_id: int, *, verification_date: Optional[str | date]) -> int:
        require_permission(actor, Permission.VERIFY_WORK)
        wo = self._work_orders.get(int(work_order_id))
        if not wo:
            raise NotFoundError("Work order not found")
        verified_on = require_date(verification_date, "Verification date")

        index = load_completion(self._details, self._progress, [wo.id])
        if not index.details_of(wo.id):
            raise ValidationError("Work order has no work details to verify")
        if not index.work_order_complete(wo.id):
            raise ValidationError(
                f"Work order must be 100% complete before verification (currently {index.work_order_progress(wo.id)}%)"
            )
        if self._operation_verifications.get_active_for_work_order(wo.id):
            raise ValidationError("This work order has already been verified")

        verification_id = self._operation_verifications.insert(
            work_order_id=wo.id, verification_date=verified_on, user_id=actor.user_id
        )
        logger.info("Work order %s operation-verified by %s", wo.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="operation_verification",
            record_id=verification_id,
            new={"work_order_id": wo.id, "verification_date": verified_on},
            description=f"Verified operation for {wo.shipyard_wo_number}",
        )
        return verification_id

    def remove_operation_verification(self, actor: Actor, verification_id: int) -> None:
        require_permission(actor, Permission.VERIFY_WORK)
        verification = self._operation_verifications.get(int(verification_id))
        if not verification:
            raise NotFoundError("Verification not found")
        self._operation_verifications.soft_delete(verification.id)
        logger.info("Operation verification %s removed by %s", verification.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="operation_verification",
            record_id=verification.id,
            old=verification,
            description="Removed operation verification",
        )

    def list_operation_pending(self) -> Sequence[PendingOperationVerification]:
        work_orders = self._work_orders.list_all()
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        verified = {v.work_order_id for v in self._operation_verifications.list_active()}
        return [
            PendingOperationVerification(
                work_order=wo,
                overall_progress=index.work_order_progress(wo.id),
                detail_count=len(index.details_of(wo.id)),
            )
            for wo in work_orders
            if wo.id not in verified and index.work_order_complete(wo.id)
        ]

    def list_operation_verified(self) -> Sequence[OperationVerification]:
        return self._operation_verifications.list_active()
