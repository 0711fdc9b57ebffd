from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import BastpStatus
from .model import Bastp, BastpInput, GeneralService, GeneralServiceType, MaterialInput, MaterialItem, MaterialUsage


class BastpRepository(Protocol):
    def get(self, bastp_id: int) -> Optional[Bastp]:
        raise NotImplementedError

    def list_all(self, *, status: Optional[BastpStatus] = None, vessel_id: Optional[int] = None) -> Sequence[Bastp]:
        raise NotImplementedError

    def create(self, data: BastpInput, *, work_details_ids: Sequence[int], user_id: int) -> int:
        """Insert the BASTP and its work-detail links in one transaction."""

        raise NotImplementedError

    def work_details_ids(self, bastp_id: int) -> Sequence[int]:
        raise NotImplementedError

    def linked_work_details_ids(self) -> set[int]:
        """Work details already attached to a live BASTP."""

        raise NotImplementedError

    def set_status(self, bastp_id: int, *, status: BastpStatus, notes: Optional[str] = None) -> bool:
        raise NotImplementedError

    def set_document(self, bastp_id: int, *, storage_path: str, uploaded_at: datetime) -> bool:
        raise NotImplementedError

    def set_invoiced(self, bastp_id: int, *, invoiced: bool, invoiced_at: Optional[datetime]) -> bool:
        raise NotImplementedError

    def soft_delete(self, bastp_id: int) -> bool:
        raise NotImplementedError


class GeneralServiceRepository(Protocol):
    def list_types(self) -> Sequence[GeneralServiceType]:
        raise NotImplementedError

    def get_type(self, service_type_id: int) -> Optional[GeneralServiceType]:
        raise NotImplementedError

    def list_for_bastp(self, bastp_id: int) -> Sequence[GeneralService]:
        raise NotImplementedError

    def get(self, service_id: int) -> Optional[GeneralService]:
        raise NotImplementedError

    def save(
        self,
        *,
        bastp_id: int,
        service_type_id: int,
        total_days: int,
        unit_price: Decimal,
        payment_price: Decimal,
        remarks: Optional[str],
    ) -> int:
        """Insert or replace the service of this type on the BASTP."""

        raise NotImplementedError

    def delete(self, service_id: int) -> bool:
        raise NotImplementedError


class MaterialRepository(Protocol):
    def list_catalogue(self) -> Sequence[MaterialItem]:
        """Live catalogue items ordered by category, then material."""

        raise NotImplementedError

    def get_item(self, material_id: int) -> Optional[MaterialItem]:
        raise NotImplementedError

    def add_item(self, *, material: str, specification: Optional[str], category: Optional[str]) -> int:
        raise NotImplementedError

    def list_usage(self, bastp_id: int, *, work_details_id: Optional[int] = None) -> Sequence[MaterialUsage]:
        """Newest first, joined with the catalogue item."""

        raise NotImplementedError

    def usage_counts(self, bastp_id: int) -> dict[int, int]:
        """Live usage rows per work detail on this BASTP."""

        raise NotImplementedError

    def get_usage(self, usage_id: int) -> Optional[MaterialUsage]:
        raise NotImplementedError

    def insert_usage(
        self, *, bastp_id: int, work_details_id: int, rows: Sequence[MaterialInput], user_id: int
    ) -> list[int]:
        """Insert all rows in one transaction."""

        raise NotImplementedError

    def update_usage(self, usage_id: int, data: MaterialInput) -> bool:
        raise NotImplementedError

    def soft_delete_usage(self, usage_id: int) -> bool:
        raise NotImplementedError
