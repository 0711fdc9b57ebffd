from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import BastpStatus
from ..work_details.model import WorkDetails


@dataclass(frozen=True)
class Bastp:
    id: int
    number: str
    date: date
    delivery_date: date
    vessel_id: int
    status: BastpStatus
    storage_path: Optional[str] = None
    bastp_upload_date: Optional[datetime] = None
    is_invoiced: bool = False
    invoiced_date: Optional[datetime] = None
    verification_notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # joined
    vessel_name: Optional[str] = None
    vessel_company: Optional[str] = None


@dataclass(frozen=True)
class BastpInput:
    number: str
    date: date
    delivery_date: date
    vessel_id: int


@dataclass(frozen=True)
class GeneralServiceType:
    id: int
    service_name: str
    service_code: str
    display_order: int = 0


@dataclass(frozen=True)
class GeneralService:
    id: int
    bastp_id: int
    service_type_id: int
    total_days: int
    unit_price: Decimal
    payment_price: Decimal
    remarks: Optional[str] = None

    # joined
    service_name: Optional[str] = None
    service_code: Optional[str] = None


@dataclass(frozen=True)
class BastpView:
    bastp: Bastp
    work_details: Sequence[WorkDetails]
    services: Sequence[GeneralService]
    services_total: Decimal


@dataclass(frozen=True)
class MaterialItem:
    id: int
    material: str
    specification: Optional[str] = None
    category: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.material} {self.specification}" if self.specification else self.material


@dataclass(frozen=True)
class MaterialInput:
    material_id: int
    size: Optional[str]
    amount: Decimal
    uom: str


@dataclass(frozen=True)
class MaterialUsage:
    id: int
    bastp_id: int
    work_details_id: int
    material_id: int
    size: Optional[str]
    amount: Decimal
    uom: str
    created_at: Optional[datetime] = None

    # joined
    material: Optional[str] = None
    specification: Optional[str] = None
    category: Optional[str] = None
    work_details_description: Optional[str] = None


@dataclass(frozen=True)
class MaterialControlView:
    bastp: Bastp
    work_details: Sequence[WorkDetails]
    counts: dict
    selected: Optional[WorkDetails]
    usages: Sequence[MaterialUsage]
