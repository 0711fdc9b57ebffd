from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import WorkDetails, WorkDetailsInput


class WorkDetailsRepository(Protocol):
    def get(self, work_details_id: int) -> Optional[WorkDetails]:
        raise NotImplementedError

    def list_for_work_orders(self, work_order_ids: Sequence[int]) -> Sequence[WorkDetails]:
        raise NotImplementedError

    def list_by_ids(self, work_details_ids: Sequence[int]) -> Sequence[WorkDetails]:
        raise NotImplementedError

    def insert_many(self, work_order_id: int, rows: Sequence[WorkDetailsInput], *, user_id: int) -> list[int]:
        """Insert all rows in one transaction."""

        raise NotImplementedError

    def update(self, work_details_id: int, data: WorkDetailsInput) -> bool:
        raise NotImplementedError

    def soft_delete(self, work_details_id: int) -> bool:
        raise NotImplementedError
