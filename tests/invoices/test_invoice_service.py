from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.shipyard_report.shipyard_report.bastp.model import BastpInput
from src.shipyard_report.shipyard_report.core.enums import BastpStatus, Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, ValidationError
from src.shipyard_report.shipyard_report.invoices.model import InvoiceDetails, InvoiceLine
from src.shipyard_report.shipyard_report.invoices.service import (
    InvoiceService,
    parse_invoice_input,
    work_details_total,
)
from tests.fakes import Yard, actor

TODAY = date(2025, 3, 10)


def _service(yard: Yard) -> InvoiceService:
    return InvoiceService(
        yard.invoices,
        yard.work_orders,
        yard.vessels,
        yard.details,
        yard.progress,
        yard.bastps,
        yard.services,
        yard.activity,
        today=lambda: TODAY,
    )


def _ready_bastp(yard: Yard, vessel_id: int) -> int:
    bastp_id = yard.bastps.create(
        BastpInput(
            number=f"BASTP-{len(yard.bastps.rows) + 1}",
            date=date(2025, 3, 1),
            delivery_date=date(2025, 3, 2),
            vessel_id=vessel_id,
        ),
        work_details_ids=[],
        user_id=1,
    )
    yard.bastps.set_document(bastp_id, storage_path="bastp-1/signed.pdf", uploaded_at=None)
    yard.bastps.set_status(bastp_id, status=BastpStatus.READY_FOR_INVOICE)
    return bastp_id


def test_paid_without_date_defaults_to_today():
    data = parse_invoice_input({"payment_status": "1"}, today=TODAY)
    assert data.payment_status is True
    assert data.payment_date == TODAY


def test_unpaid_clears_payment_date():
    data = parse_invoice_input({"payment_status": "0", "payment_date": "2025-03-01"}, today=TODAY)
    assert data.payment_status is False
    assert data.payment_date is None


def test_negative_price_is_rejected():
    with pytest.raises(ValidationError):
        parse_invoice_input({"payment_price": "-5"}, today=TODAY)


def test_work_details_total_prefers_line_prices():
    invoice = InvoiceDetails(id=1, work_order_id=1, payment_price=Decimal("999"))
    lines = [
        InvoiceLine(id=1, invoice_details_id=1, work_details_id=1, payment_price=Decimal("1500000")),
        InvoiceLine(id=2, invoice_details_id=1, work_details_id=2, payment_price=None),
        InvoiceLine(id=3, invoice_details_id=1, work_details_id=3, payment_price=Decimal("250000")),
    ]
    assert work_details_total(invoice, lines) == Decimal("1750000")


def test_work_details_total_falls_back_to_header_price():
    invoice = InvoiceDetails(id=1, work_order_id=1, payment_price=Decimal("5000000"))
    lines = [InvoiceLine(id=1, invoice_details_id=1, work_details_id=1)]
    assert work_details_total(invoice, lines) == Decimal("5000000")


def test_only_completed_uninvoiced_work_orders_are_eligible():
    yard = Yard()
    done = yard.completed_work_order("WO-DONE")
    partial = yard.work_orders.add(yard.vessels.add("MV Other").id, "WO-PARTIAL")
    d = yard.details.add(partial.id)
    yard.progress.add(d.id, 90, date(2025, 2, 1))
    yard.work_orders.add(yard.vessels.add("MV Empty").id, "WO-EMPTY")

    eligible = _service(yard).eligible_work_orders()

    assert [e.work_order.id for e in eligible] == [done.id]
    assert eligible[0].detail_count == 2


def test_create_invoice_copies_all_details_as_lines():
    yard = Yard()
    wo = yard.completed_work_order()
    details = yard.details.list_for_work_orders([wo.id])
    form = {
        "invoice_number": "INV-2025-001",
        "payment_status": "0",
        f"line_price_{details[0].id}": "1000000",
    }

    invoice_id = _service(yard).create_invoice(actor(Role.FINANCE), wo.id, form)

    lines = yard.invoices.lines(invoice_id)
    assert [line.work_details_id for line in lines] == [d.id for d in details]
    assert lines[0].payment_price == Decimal("1000000")
    assert lines[1].payment_price is None
    assert yard.invoices.get(invoice_id).invoice_number == "INV-2025-001"


def test_cannot_invoice_twice():
    yard = Yard()
    wo = yard.completed_work_order()
    svc = _service(yard)
    svc.create_invoice(actor(Role.FINANCE), wo.id, {})

    with pytest.raises(ValidationError, match="already been invoiced"):
        svc.create_invoice(actor(Role.FINANCE), wo.id, {})
    assert svc.eligible_work_orders() == []


def test_cannot_invoice_incomplete_work_order():
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    d = yard.details.add(wo.id)
    yard.progress.add(d.id, 99, date(2025, 2, 1))

    with pytest.raises(ValidationError, match="100% complete"):
        _service(yard).create_invoice(actor(Role.FINANCE), wo.id, {})


def test_operations_roles_cannot_create_invoices():
    yard = Yard()
    wo = yard.completed_work_order()
    with pytest.raises(AuthorizationError):
        _service(yard).create_invoice(actor(Role.PRODUCTION), wo.id, {})


def test_bastp_is_marked_invoiced_and_released_on_delete():
    yard = Yard()
    wo = yard.completed_work_order()
    bastp_id = _ready_bastp(yard, wo.vessel_id)
    svc = _service(yard)

    invoice_id = svc.create_invoice(actor(Role.FINANCE), wo.id, {}, bastp_id=str(bastp_id))
    assert yard.bastps.get(bastp_id).is_invoiced
    assert yard.bastps.get(bastp_id).status == BastpStatus.INVOICED

    svc.delete_invoice(actor(Role.FINANCE), invoice_id)
    assert not yard.bastps.get(bastp_id).is_invoiced
    assert yard.bastps.get(bastp_id).status == BastpStatus.READY_FOR_INVOICE
    assert yard.invoices.get(invoice_id) is None


def test_bastp_from_another_vessel_is_rejected():
    yard = Yard()
    wo = yard.completed_work_order()
    other = yard.vessels.add("MV Elsewhere")
    bastp_id = _ready_bastp(yard, other.id)

    with pytest.raises(ValidationError, match="different vessel"):
        _service(yard).create_invoice(actor(Role.FINANCE), wo.id, {}, bastp_id=bastp_id)


def test_update_invoice_changes_payment_and_line_prices():
    yard = Yard()
    wo = yard.completed_work_order(details=1)
    svc = _service(yard)
    invoice_id = svc.create_invoice(actor(Role.FINANCE), wo.id, {})
    line = yard.invoices.lines(invoice_id)[0]

    svc.update_invoice(
        actor(Role.FINANCE),
        invoice_id,
        {"payment_status": "on", "payment_date": "2025-03-05", f"line_price_{line.work_details_id}": "750000"},
    )

    invoice = yard.invoices.get(invoice_id)
    assert invoice.payment_status
    assert invoice.payment_date == date(2025, 3, 5)
    assert yard.invoices.lines(invoice_id)[0].payment_price == Decimal("750000")
    assert yard.logs.entries[-1].changes["payment_status"] == {"old": False, "new": True}


def test_print_data_totals_include_general_services():
    yard = Yard()
    wo = yard.completed_work_order(details=1)
    bastp_id = _ready_bastp(yard, wo.vessel_id)
    yard.services.save(
        bastp_id=bastp_id,
        service_type_id=1,
        total_days=2,
        unit_price=Decimal("500000"),
        payment_price=Decimal("1000000"),
        remarks=None,
    )
    svc = _service(yard)
    d = yard.details.list_for_work_orders([wo.id])[0]
    invoice_id = svc.create_invoice(actor(Role.FINANCE), wo.id, {f"line_price_{d.id}": "3000000"}, bastp_id=bastp_id)

    data = svc.invoice_print_data(invoice_id)

    assert data.work_details_total == Decimal("3000000")
    assert data.services_total == Decimal("1000000")
    assert data.grand_total == Decimal("4000000")
    assert data.vessel.name == "MV Sinar Laut"
