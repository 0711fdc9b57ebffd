from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from ..activity_log.service import ActivityLogService
from ..common.pagination import Page, clamp_page
from ..common.validators import optional_text, require_date
from ..core.constants import COMPLETE_PERCENT, DEFAULT_PAGE_SIZE, EVIDENCE_BUCKET
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..storage.document_store import LocalDocumentStore, lifetime_for
from ..storage.file_rules import sanitize_filename, validate_evidence_file
from ..storage.model import UploadedFile
from ..users.model import Actor
from ..users.service import require_permission
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.repository import WorkOrderRepository
from .calculator import load_completion, overall_progress, report_order
from .model import ProgressFilter, ProgressListRow, ProgressStats, WorkOrderProgressSummary, WorkProgress
from .repository import WorkProgressRepository

logger = logging.getLogger(__name__)


def parse_percentage(value: Any) -> int:
    raw = str(value if value is not None else "").strip()
    if not raw:
        raise ValidationError("Progress percentage is required")
    try:
        number = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("Progress percentage must be a number")
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError("Progress percentage must be a whole number")
    number = int(number)
    if number < 0 or number > COMPLETE_PERCENT:
        raise ValidationError("Progress percentage must be between 0 and 100")
    return number


class ProgressService:
    def __init__(
        self,
        progress: WorkProgressRepository,
        details: WorkDetailsRepository,
        work_orders: WorkOrderRepository,
        store: LocalDocumentStore,
        activity: ActivityLogService,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._progress = progress
        self._details = details
        self._work_orders = work_orders
        self._store = store
        self._activity = activity
        self._clock = clock

    def get_progress(self, progress_id: int) -> WorkProgress:
        record = self._progress.get(int(progress_id))
        if not record:
            raise NotFoundError("Progress report not found")
        return record

    def _store_evidence(self, work_details_id: int, evidence: UploadedFile) -> str:
        evidence = validate_evidence_file(evidence)
        stamp = int(self._clock() * 1000)
        path = f"work-details-{int(work_details_id)}/{stamp}-{sanitize_filename(evidence.filename)}"
        self._store.upload(EVIDENCE_BUCKET, path, evidence.data)
        return path

    def _discard(self, path: Optional[str]) -> None:
        if not path:
            return
        try:
            self._store.remove(EVIDENCE_BUCKET, path)
        except StorageError:
            logger.warning("Could not remove evidence file %s", path)

    def add_progress(
        self,
        actor: Actor,
        *,
        work_details_id: int,
        form: Mapping[str, Any],
        evidence: Optional[UploadedFile] = None,
    ) -> int:
        require_permission(actor, Permission.MANAGE_WORK_PROGRESS)
        details = self._details.get(int(work_details_id))
        if not details:
            raise NotFoundError("Work details not found")

        percentage = parse_percentage(form.get("progress_percentage"))
        report_date = require_date(form.get("report_date"), "Report date")
        notes = optional_text(form.get("notes"))

        storage_path: Optional[str] = None
        if evidence is not None:
            require_permission(actor, Permission.UPLOAD_EVIDENCE)
            storage_path = self._store_evidence(details.id, evidence)

        try:
            progress_id = self._progress.insert(
                work_details_id=details.id,
                progress_percentage=percentage,
                report_date=report_date,
                notes=notes,
                storage_path=storage_path,
                user_id=actor.user_id,
            )
        except Exception:
            self._discard(storage_path)
            raise

        logger.info("Progress %s%% reported for work details %s by %s", percentage, details.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="work_progress",
            record_id=progress_id,
            new={
                "work_details_id": details.id,
                "progress_percentage": percentage,
                "report_date": report_date,
                "notes": notes,
                "storage_path": storage_path,
            },
            description=f"Reported {percentage}% on {details.description}",
        )
        return progress_id

    def update_progress(
        self,
        actor: Actor,
        progress_id: int,
        *,
        form: Mapping[str, Any],
        evidence: Optional[UploadedFile] = None,
    ) -> None:
        require_permission(actor, Permission.MANAGE_WORK_PROGRESS)
        old = self.get_progress(progress_id)
        percentage = parse_percentage(form.get("progress_percentage"))
        report_date = require_date(form.get("report_date"), "Report date")
        notes = optional_text(form.get("notes"))

        storage_path = old.storage_path
        if evidence is not None:
            require_permission(actor, Permission.UPLOAD_EVIDENCE)
            storage_path = self._store_evidence(old.work_details_id, evidence)

        try:
            updated = self._progress.update(
                old.id,
                progress_percentage=percentage,
                report_date=report_date,
                notes=notes,
                storage_path=storage_path,
            )
        except Exception:
            if storage_path != old.storage_path:
                self._discard(storage_path)
            raise
        if not updated:
            if storage_path != old.storage_path:
                self._discard(storage_path)
            raise ValidationError("Failed to update progress report")

        if storage_path != old.storage_path:
            self._discard(old.storage_path)

        logger.info("Progress %s updated by %s", old.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="work_progress",
            record_id=old.id,
            old={
                "progress_percentage": old.progress_percentage,
                "report_date": old.report_date,
                "notes": old.notes,
                "storage_path": old.storage_path,
            },
            new={
                "progress_percentage": percentage,
                "report_date": report_date,
                "notes": notes,
                "storage_path": storage_path,
            },
            description="Updated progress report",
        )

    def delete_progress(self, actor: Actor, progress_id: int) -> None:
        require_permission(actor, Permission.MANAGE_WORK_PROGRESS)
        record = self.get_progress(progress_id)
        self._progress.soft_delete(record.id)
        self._discard(record.storage_path)
        logger.info("Progress %s deleted by %s", record.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="work_progress",
            record_id=record.id,
            old=record,
            description="Deleted progress report",
        )

    def evidence_token(self, progress_id: int, *, purpose: str = "view") -> str:
        record = self.get_progress(progress_id)
        if not record.storage_path:
            raise NotFoundError("This progress report has no evidence")
        return self._store.create_signed_token(EVIDENCE_BUCKET, record.storage_path, lifetime_for(purpose))

    def work_order_summary(self, work_order_id: int) -> WorkOrderProgressSummary:
        if not self._work_orders.get(int(work_order_id)):
            raise NotFoundError("Work order not found")
        index = load_completion(self._details, self._progress, [int(work_order_id)])
        return index.summary(int(work_order_id))

    def history(self, work_details_id: int):
        return sorted(
            self._progress.list_for_details([int(work_details_id)]),
            key=report_order,
            reverse=True,
        )

    def list_progress(self, flt: ProgressFilter, *, page=1, page_size: int = DEFAULT_PAGE_SIZE) -> Page[ProgressListRow]:
        if flt.date_from and flt.date_to and flt.date_to < flt.date_from:
            raise ValidationError("End date cannot be before start date")
        page, offset = clamp_page(page, page_size)
        rows, total = self._progress.search(flt, limit=page_size, offset=offset)
        return Page(items=rows, page=page, page_size=page_size, total=total)

    def progress_stats(self) -> ProgressStats:
        work_orders = self._work_orders.list_all()
        wo_ids = [wo.id for wo in work_orders]
        index = load_completion(self._details, self._progress, wo_ids)

        all_details = [d for wo_id in wo_ids for d in index.details_of(wo_id)]
        percentages = [index.detail_progress(d.id) for d in all_details]
        average = overall_progress(percentages)

        return ProgressStats(
            total_work_orders=len(work_orders),
            completed_work_orders=sum(1 for wo_id in wo_ids if index.work_order_complete(wo_id)),
            total_work_details=len(all_details),
            completed_work_details=sum(1 for p in percentages if p >= COMPLETE_PERCENT),
            average_progress=int(average),
            details_with_evidence=sum(1 for d in all_details if index.detail_has_evidence(d.id)),
        )
