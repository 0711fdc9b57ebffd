from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Vessel, VesselInput


class VesselRepository(Protocol):
    def get(self, vessel_id: int) -> Optional[Vessel]:
        raise NotImplementedError

    def list_all(self, *, search: Optional[str] = None, vessel_ids: Optional[Sequence[int]] = None) -> Sequence[Vessel]:
        raise NotImplementedError

    def find_by_name_and_company(self, *, name: str, company: str) -> Optional[Vessel]:
        raise NotImplementedError

    def create(self, data: VesselInput) -> int:
        raise NotImplementedError

    def update(self, vessel_id: int, data: VesselInput) -> bool:
        raise NotImplementedError

    def soft_delete(self, vessel_id: int) -> bool:
        raise NotImplementedError
