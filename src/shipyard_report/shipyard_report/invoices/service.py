from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from ..activity_log.service import ActivityLogService
from ..bastp.repository import BastpRepository, GeneralServiceRepository
from ..common.datetime_utils import now_local, today_local
from ..common.pagination import Page, clamp_page
from ..common.validators import optional_date, optional_decimal, optional_text
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import ActivityAction, BastpStatus, Permission
from ..core.exceptions import NotFoundError, ValidationError
from ..progress.calculator import load_completion
from ..progress.repository import WorkProgressRepository
from ..users.model import Actor
from ..users.service import require_permission
from ..vessels.repository import VesselRepository
from ..work_details.repository import WorkDetailsRepository
from ..work_orders.repository import WorkOrderRepository
from .model import EligibleWorkOrder, InvoiceDetails, InvoiceInput, InvoiceLine, InvoicePrintData, InvoiceStats
from .repository import InvoiceRepository

logger = logging.getLogger(__name__)

STATUS_FILTERS = {"all": None, "paid": True, "unpaid": False}


def _truthy(value: Any) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "on", "yes"}


def parse_invoice_input(form: Mapping[str, Any], *, today: date) -> InvoiceInput:
    """Payment date is only kept for paid invoices; paid without a date means today."""
    paid = _truthy(form.get("payment_status"))
    payment_date = optional_date(form.get("payment_date"), "Payment date") if paid else None
    if paid and payment_date is None:
        payment_date = today

    return InvoiceInput(
        invoice_number=optional_text(form.get("invoice_number")),
        faktur_number=optional_text(form.get("faktur_number")),
        wo_document_collection_date=optional_date(
            form.get("wo_document_collection_date"), "WO document collection date"
        ),
        due_date=optional_date(form.get("due_date"), "Due date"),
        delivery_date=optional_date(form.get("delivery_date"), "Delivery date"),
        collection_date=optional_date(form.get("collection_date"), "Collection date"),
        receiver_name=optional_text(form.get("receiver_name")),
        payment_price=optional_decimal(form.get("payment_price"), "Payment price"),
        payment_status=paid,
        payment_date=payment_date,
        remarks=optional_text(form.get("remarks")),
    )


def parse_line_prices(form: Mapping[str, Any], work_details_ids: Sequence[int]) -> dict[int, Optional[Decimal]]:
    """Read `line_price_<work_details_id>` fields."""
    return {
        int(wd_id): optional_decimal(form.get(f"line_price_{int(wd_id)}"), "Work detail price")
        for wd_id in work_details_ids
    }


def work_details_total(invoice: InvoiceDetails, lines: Sequence[InvoiceLine]) -> Decimal:
    """Sum of line prices; falls back to the header price when no line is priced."""
    priced = [line.payment_price for line in lines if line.payment_price is not None]
    if priced:
        return sum(priced, Decimal("0"))
    return invoice.payment_price or Decimal("0")


class InvoiceService:
    def __init__(
        self,
        invoices: InvoiceRepository,
        work_orders: WorkOrderRepository,
        vessels: VesselRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        bastps: BastpRepository,
        services: GeneralServiceRepository,
        activity: ActivityLogService,
        *,
        today: Callable[[], date] = today_local,
    ):
        self._invoices = invoices
        self._work_orders = work_orders
        self._vessels = vessels
        self._details = details
        self._progress = progress
        self._bastps = bastps
        self._services = services
        self._activity = activity
        self._today = today

    def get_invoice(self, invoice_id: int) -> InvoiceDetails:
        invoice = self._invoices.get(int(invoice_id))
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def invoice_lines(self, invoice_id: int) -> Sequence[InvoiceLine]:
        return self._invoices.lines(int(invoice_id))

    # -- eligibility -------------------------------------------------------

    def eligible_work_orders(self) -> Sequence[EligibleWorkOrder]:
        """Fully completed work orders that no live invoice references."""
        invoiced = self._invoices.invoiced_work_order_ids()
        work_orders = [wo for wo in self._work_orders.list_all() if wo.id not in invoiced]
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        return [
            EligibleWorkOrder(work_order=wo, detail_count=len(index.details_of(wo.id)))
            for wo in work_orders
            if index.work_order_complete(wo.id)
        ]

    def _check_eligible(self, work_order_id: int):
        wo = self._work_orders.get(int(work_order_id))
        if not wo:
            raise NotFoundError("Work order not found")
        if wo.id in self._invoices.invoiced_work_order_ids():
            raise ValidationError("This work order has already been invoiced")
        index = load_completion(self._details, self._progress, [wo.id])
        details = index.details_of(wo.id)
        if not details:
            raise ValidationError("Work order has no work details to invoice")
        if not index.work_order_complete(wo.id):
            raise ValidationError(
                f"All work details must be 100% complete before invoicing (currently {index.work_order_progress(wo.id)}%)"
            )
        return wo, details

    # -- create / update / delete -----------------------------------------

    def create_invoice(
        self,
        actor: Actor,
        work_order_id: int,
        form: Mapping[str, Any],
        *,
        bastp_id: Optional[Any] = None,
    ) -> int:
        require_permission(actor, Permission.CREATE_INVOICES)
        wo, details = self._check_eligible(work_order_id)
        data = parse_invoice_input(form, today=self._today())
        prices = parse_line_prices(form, [d.id for d in details])

        bastp = None
        if bastp_id not in (None, "", 0, "0"):
            try:
                bastp = self._bastps.get(int(bastp_id))
            except (TypeError, ValueError):
                raise ValidationError("Invalid BASTP selection")
            if not bastp:
                raise NotFoundError("BASTP not found")
            if bastp.status != BastpStatus.READY_FOR_INVOICE or bastp.is_invoiced:
                raise ValidationError("BASTP must be ready for invoice and not yet invoiced")
            if bastp.vessel_id != wo.vessel_id:
                raise ValidationError("BASTP belongs to a different vessel")

        invoice_id = self._invoices.create(
            data,
            work_order_id=wo.id,
            bastp_id=bastp.id if bastp else None,
            lines=[(d.id, prices.get(d.id)) for d in details],
            user_id=actor.user_id,
        )
        if bastp:
            self._bastps.set_invoiced(bastp.id, invoiced=True, invoiced_at=now_local())

        logger.info(
            "Invoice %s created for work order %s (%d lines) by %s", invoice_id, wo.id, len(details), actor.user_id
        )
        self._activity.record(
            actor,
            action=ActivityAction.CREATE,
            table_name="invoice_details",
            record_id=invoice_id,
            new=data,
            description=f"Created invoice {data.invoice_number or invoice_id} for {wo.shipyard_wo_number}",
        )
        return invoice_id

    def update_invoice(self, actor: Actor, invoice_id: int, form: Mapping[str, Any]) -> None:
        require_permission(actor, Permission.EDIT_INVOICES)
        old = self.get_invoice(invoice_id)
        data = parse_invoice_input(form, today=self._today())
        lines = self._invoices.lines(old.id)
        prices = parse_line_prices(form, [line.work_details_id for line in lines])

        if not self._invoices.update(old.id, data, line_prices=prices):
            raise ValidationError("Failed to update invoice")
        logger.info("Invoice %s updated by %s", old.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.UPDATE,
            table_name="invoice_details",
            record_id=old.id,
            old=InvoiceInput(
                invoice_number=old.invoice_number,
                faktur_number=old.faktur_number,
                wo_document_collection_date=old.wo_document_collection_date,
                due_date=old.due_date,
                delivery_date=old.delivery_date,
                collection_date=old.collection_date,
                receiver_name=old.receiver_name,
                payment_price=old.payment_price,
                payment_status=old.payment_status,
                payment_date=old.payment_date,
                remarks=old.remarks,
            ),
            new=data,
            description=f"Updated invoice {data.invoice_number or old.id}",
        )

    def delete_invoice(self, actor: Actor, invoice_id: int) -> None:
        require_permission(actor, Permission.DELETE_INVOICES)
        invoice = self.get_invoice(invoice_id)
        self._invoices.soft_delete(invoice.id)
        if invoice.bastp_id:
            self._bastps.set_invoiced(invoice.bastp_id, invoiced=False, invoiced_at=None)
        logger.info("Invoice %s deleted by %s", invoice.id, actor.user_id)
        self._activity.record(
            actor,
            action=ActivityAction.DELETE,
            table_name="invoice_details",
            record_id=invoice.id,
            old=invoice,
            description=f"Deleted invoice {invoice.invoice_number or invoice.id}",
        )

    # -- listing -----------------------------------------------------------

    def list_invoices(
        self,
        *,
        search: Optional[str] = None,
        status: str = "all",
        page=1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[InvoiceDetails]:
        if status not in STATUS_FILTERS:
            raise ValidationError("Unknown invoice status filter")
        page, offset = clamp_page(page, page_size)
        items, total = self._invoices.search(
            search=(search or "").strip() or None,
            paid=STATUS_FILTERS[status],
            limit=page_size,
            offset=offset,
        )
        return Page(items=items, page=page, page_size=page_size, total=total)

    def invoice_stats(self) -> InvoiceStats:
        return self._invoices.stats()

    # -- print -------------------------------------------------------------

    def invoice_print_data(self, invoice_id: int) -> InvoicePrintData:
        invoice = self.get_invoice(invoice_id)
        wo = self._work_orders.get(invoice.work_order_id)
        if not wo:
            raise NotFoundError("Work order for this invoice no longer exists")
        vessel = self._vessels.get(wo.vessel_id)
        lines = self._invoices.lines(invoice.id)

        bastp = self._bastps.get(invoice.bastp_id) if invoice.bastp_id else None
        services = self._services.list_for_bastp(bastp.id) if bastp else []

        wd_total = work_details_total(invoice, lines)
        services_total = sum((s.payment_price for s in services), Decimal("0"))
        return InvoicePrintData(
            invoice=invoice,
            work_order=wo,
            vessel=vessel,
            lines=lines,
            bastp=bastp,
            services=services,
            work_details_total=wd_total,
            services_total=services_total,
            grand_total=wd_total + services_total,
        )
