"""Completion arithmetic shared by progress, verification, invoices and the dashboard.

Progress is never stored on a work detail: the latest report wins (highest
report_date, then most recent created_at). A work order's progress is the
rounded mean over its live work details.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ..core.constants import COMPLETE_PERCENT
from ..work_details.model import WorkDetails
from ..work_details.repository import WorkDetailsRepository
from .model import DetailProgress, WorkOrderProgressSummary, WorkProgress
from .repository import WorkProgressRepository


def report_order(record: WorkProgress):
    return (record.report_date, record.created_at or datetime.min, record.id)


def latest_record(records: Iterable[WorkProgress]) -> Optional[WorkProgress]:
    records = list(records)
    if not records:
        return None
    return max(records, key=report_order)


def current_progress(records: Iterable[WorkProgress]) -> int:
    latest = latest_record(records)
    return int(latest.progress_percentage) if latest else 0


def overall_progress(percentages: Sequence[int]) -> int:
    if not percentages:
        return 0
    mean = Decimal(sum(percentages)) / Decimal(len(percentages))
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_fully_complete(percentages: Sequence[int]) -> bool:
    return bool(percentages) and all(p >= COMPLETE_PERCENT for p in percentages)


class CompletionIndex:
    """Current progress of a set of work details, grouped by work order."""

    def __init__(self, details: Sequence[WorkDetails], records: Sequence[WorkProgress]):
        self._details_by_wo: dict[int, list[WorkDetails]] = defaultdict(list)
        for d in details:
            self._details_by_wo[d.work_order_id].append(d)

        by_detail: dict[int, list[WorkProgress]] = defaultdict(list)
        for r in records:
            by_detail[r.work_details_id].append(r)
        self._latest: dict[int, WorkProgress] = {}
        for detail_id, recs in by_detail.items():
            self._latest[detail_id] = latest_record(recs)
        self._has_evidence = {r.work_details_id for r in records if r.storage_path}

    def details_of(self, work_order_id: int) -> list[WorkDetails]:
        return list(self._details_by_wo.get(int(work_order_id), []))

    def detail_progress(self, work_details_id: int) -> int:
        latest = self._latest.get(int(work_details_id))
        return int(latest.progress_percentage) if latest else 0

    def last_report_date(self, work_details_id: int) -> Optional[date]:
        latest = self._latest.get(int(work_details_id))
        return latest.report_date if latest else None

    def detail_has_evidence(self, work_details_id: int) -> bool:
        return int(work_details_id) in self._has_evidence

    def detail_complete(self, work_details_id: int) -> bool:
        return self.detail_progress(work_details_id) >= COMPLETE_PERCENT

    def work_order_percentages(self, work_order_id: int) -> list[int]:
        return [self.detail_progress(d.id) for d in self.details_of(work_order_id)]

    def work_order_progress(self, work_order_id: int) -> int:
        return overall_progress(self.work_order_percentages(work_order_id))

    def work_order_complete(self, work_order_id: int) -> bool:
        return is_fully_complete(self.work_order_percentages(work_order_id))

    def has_progress_data(self, work_order_id: int) -> bool:
        return any(d.id in self._latest for d in self.details_of(work_order_id))

    def summary(self, work_order_id: int) -> WorkOrderProgressSummary:
        details = [
            DetailProgress(
                work_details_id=d.id,
                description=d.description,
                current_progress=self.detail_progress(d.id),
                last_report_date=self.last_report_date(d.id),
                is_completed=self.detail_complete(d.id),
            )
            for d in self.details_of(work_order_id)
        ]
        return WorkOrderProgressSummary(
            work_order_id=int(work_order_id),
            details=details,
            overall_progress=self.work_order_progress(work_order_id),
            is_completed=self.work_order_complete(work_order_id),
        )


def load_completion(
    details_repo: WorkDetailsRepository,
    progress_repo: WorkProgressRepository,
    work_order_ids: Sequence[int],
) -> CompletionIndex:
    details = details_repo.list_for_work_orders(list(work_order_ids)) if work_order_ids else []
    records = progress_repo.list_for_details([d.id for d in details]) if details else []
    return CompletionIndex(details, records)
