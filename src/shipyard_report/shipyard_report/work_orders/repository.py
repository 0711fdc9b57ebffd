from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import WorkOrder, WorkOrderInput


class WorkOrderRepository(Protocol):
    def get(self, work_order_id: int) -> Optional[WorkOrder]:
        raise NotImplementedError

    def list_all(
        self,
        *,
        search: Optional[str] = None,
        vessel_id: Optional[int] = None,
        vessel_ids: Optional[Sequence[int]] = None,
    ) -> Sequence[WorkOrder]:
        """Newest first, joined with vessel columns."""

        raise NotImplementedError

    def list_by_ids(self, work_order_ids: Sequence[int]) -> Sequence[WorkOrder]:
        raise NotImplementedError

    def create(self, data: WorkOrderInput, *, user_id: int) -> int:
        raise NotImplementedError

    def update(self, work_order_id: int, data: WorkOrderInput) -> bool:
        raise NotImplementedError

    def soft_delete(self, work_order_id: int) -> bool:
        raise NotImplementedError
