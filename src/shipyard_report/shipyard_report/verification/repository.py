from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import OperationVerification, WorkVerification


class WorkVerificationRepository(Protocol):
    def get(self, verification_id: int) -> Optional[WorkVerification]:
        raise NotImplementedError

    def get_active_for_details(self, work_details_id: int) -> Optional[WorkVerification]:
        raise NotImplementedError

    def list_active(self) -> Sequence[WorkVerification]:
        raise NotImplementedError

    def insert(self, *, work_details_id: int, verification_date: date, notes: Optional[str], user_id: int) -> int:
        raise NotImplementedError

    def soft_delete(self, verification_id: int) -> bool:
        raise NotImplementedError


class OperationVerificationRepository(Protocol):
    def get(self, verification_id: int) -> Optional[OperationVerification]:
        raise NotImplementedError

    def get_active_for_work_order(self, work_order_id: int) -> Optional[OperationVerification]:
        raise NotImplementedError

    def list_active(self) -> Sequence[OperationVerification]:
        raise NotImplementedError

    def insert(self, *, work_order_id: int, verification_date: date, user_id: int) -> int:
        raise NotImplementedError

    def soft_delete(self, verification_id: int) -> bool:
        raise NotImplementedError
