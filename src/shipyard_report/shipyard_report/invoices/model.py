from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..bastp.model import Bastp, GeneralService
from ..vessels.model import Vessel
from ..work_orders.model import WorkOrder


@dataclass(frozen=True)
class InvoiceDetails:
    id: int
    work_order_id: int
    bastp_id: Optional[int] = None
    invoice_number: Optional[str] = None
    faktur_number: Optional[str] = None
    wo_document_collection_date: Optional[date] = None
    due_date: Optional[date] = None
    delivery_date: Optional[date] = None
    collection_date: Optional[date] = None
    receiver_name: Optional[str] = None
    payment_price: Optional[Decimal] = None
    payment_status: bool = False
    payment_date: Optional[date] = None
    remarks: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # joined
    shipyard_wo_number: Optional[str] = None
    customer_wo_number: Optional[str] = None
    vessel_name: Optional[str] = None
    vessel_company: Optional[str] = None


@dataclass(frozen=True)
class InvoiceInput:
    invoice_number: Optional[str] = None
    faktur_number: Optional[str] = None
    wo_document_collection_date: Optional[date] = None
    due_date: Optional[date] = None
    delivery_date: Optional[date] = None
    collection_date: Optional[date] = None
    receiver_name: Optional[str] = None
    payment_price: Optional[Decimal] = None
    payment_status: bool = False
    payment_date: Optional[date] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class InvoiceLine:
    id: int
    invoice_details_id: int
    work_details_id: int
    payment_price: Optional[Decimal] = None

    # joined from work_details
    description: Optional[str] = None
    location: Optional[str] = None
    work_type: Optional[str] = None
    quantity: Optional[Decimal] = None
    uom: Optional[str] = None


@dataclass(frozen=True)
class InvoiceStats:
    total: int
    paid: int
    unpaid: int


@dataclass(frozen=True)
class EligibleWorkOrder:
    work_order: WorkOrder
    detail_count: int


@dataclass(frozen=True)
class InvoicePrintData:
    invoice: InvoiceDetails
    work_order: WorkOrder
    vessel: Optional[Vessel]
    lines: Sequence[InvoiceLine]
    bastp: Optional[Bastp]
    services: Sequence[GeneralService]
    work_details_total: Decimal
    services_total: Decimal
    grand_total: Decimal
