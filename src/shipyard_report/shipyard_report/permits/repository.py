from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PermitToWork


class PermitRepository(Protocol):
    def get(self, permit_id: int) -> Optional[PermitToWork]:
        raise NotImplementedError

    def get_for_work_order(self, work_order_id: int) -> Optional[PermitToWork]:
        raise NotImplementedError

    def list_all(self, *, search: Optional[str] = None, vessel_ids: Optional[Sequence[int]] = None) -> Sequence[PermitToWork]:
        raise NotImplementedError

    def insert(self, *, work_order_id: int, storage_path: str, original_name: str, user_id: int) -> int:
        raise NotImplementedError

    def replace_file(self, permit_id: int, *, storage_path: str, original_name: str, user_id: int) -> bool:
        raise NotImplementedError

    def soft_delete(self, permit_id: int) -> bool:
        raise NotImplementedError
