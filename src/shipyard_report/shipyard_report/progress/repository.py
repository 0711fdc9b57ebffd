from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ProgressFilter, ProgressListRow, WorkProgress


class WorkProgressRepository(Protocol):
    def get(self, progress_id: int) -> Optional[WorkProgress]:
        raise NotImplementedError

    def list_for_details(self, work_details_ids: Sequence[int]) -> Sequence[WorkProgress]:
        raise NotImplementedError

    def search(
        self, flt: ProgressFilter, *, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[Sequence[ProgressListRow], int]:
        """Rows newest report first, plus the total count. No limit returns everything."""

        raise NotImplementedError

    def insert(
        self,
        *,
        work_details_id: int,
        progress_percentage: int,
        report_date: date,
        notes: Optional[str],
        storage_path: Optional[str],
        user_id: int,
    ) -> int:
        raise NotImplementedError

    def update(
        self,
        progress_id: int,
        *,
        progress_percentage: int,
        report_date: date,
        notes: Optional[str],
        storage_path: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, progress_id: int) -> bool:
        raise NotImplementedError
