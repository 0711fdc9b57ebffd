from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.shipyard_report.shipyard_report.bastp.service import BastpService, service_payment
from src.shipyard_report.shipyard_report.core.constants import BASTP_BUCKET
from src.shipyard_report.shipyard_report.core.enums import BastpStatus, Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, ValidationError
from src.shipyard_report.shipyard_report.storage.document_store import LocalDocumentStore
from src.shipyard_report.shipyard_report.storage.model import UploadedFile
from tests.fakes import Yard, actor

SIGNED = UploadedFile(filename="BASTP signed.pdf", content_type="application/pdf", data=b"%PDF-1.4 signed")


def _service(tmp_path, yard: Yard) -> BastpService:
    store = LocalDocumentStore(tmp_path, secret_key="test", buckets=(BASTP_BUCKET,))
    return BastpService(
        yard.bastps,
        yard.services,
        yard.vessels,
        yard.work_orders,
        yard.details,
        yard.progress,
        store,
        yard.activity,
        clock=lambda: 1_700_000_000.0,
    )


def _form(vessel_id: int, **overrides):
    form = {"number": "BASTP/001", "date": "2025-03-01", "delivery_date": "2025-03-03", "vessel_id": str(vessel_id)}
    form.update(overrides)
    return form


def test_service_payment_is_days_times_price():
    assert service_payment(3, Decimal("250000")) == Decimal("750000")
    assert service_payment(0, Decimal("250000")) == Decimal("0")


def test_create_bastp_with_completed_details(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)

    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), [str(i) for i in ids])

    bastp = yard.bastps.get(bastp_id)
    assert bastp.status == BastpStatus.DRAFT
    assert yard.bastps.work_details_ids(bastp_id) == ids
    assert svc.eligible_work_details(wo.vessel_id) == []


def test_incomplete_details_cannot_be_added(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    d = yard.details.add(wo.id)
    yard.progress.add(d.id, 80, date(2025, 2, 1))

    with pytest.raises(ValidationError):
        _service(tmp_path, yard).create_bastp(actor(), _form(wo.vessel_id), [d.id])


def test_delivery_before_bastp_date_is_rejected(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]

    with pytest.raises(ValidationError, match="Delivery date"):
        _service(tmp_path, yard).create_bastp(actor(), _form(wo.vessel_id, delivery_date="2025-02-01"), ids)


def test_lifecycle_requires_document_before_ready_for_invoice(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)
    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), ids)

    assert svc.advance_status(actor(), bastp_id) == BastpStatus.VERIFIED
    with pytest.raises(ValidationError, match="Upload the signed BASTP"):
        svc.advance_status(actor(), bastp_id)

    svc.upload_document(actor(), bastp_id, SIGNED)
    path = yard.bastps.get(bastp_id).storage_path
    assert path.startswith(f"bastp-{bastp_id}/")
    assert (tmp_path / BASTP_BUCKET / path).exists()

    assert svc.advance_status(actor(), bastp_id) == BastpStatus.READY_FOR_INVOICE
    assert [b.id for b in svc.ready_for_invoice(vessel_id=wo.vessel_id)] == [bastp_id]
    with pytest.raises(ValidationError):
        svc.advance_status(actor(), bastp_id)


def test_finance_cannot_advance_status(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)
    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), ids)

    with pytest.raises(AuthorizationError):
        svc.advance_status(actor(Role.FINANCE), bastp_id)


def test_general_service_is_one_row_per_type(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)
    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), ids)

    first = svc.save_general_service(actor(), bastp_id, {"service_type_id": "2", "total_days": "4", "unit_price": "150000"})
    second = svc.save_general_service(actor(), bastp_id, {"service_type_id": "2", "total_days": "5", "unit_price": "150000"})

    view = svc.bastp_view(bastp_id)
    assert first == second
    assert len(view.services) == 1
    assert view.services[0].payment_price == Decimal("750000")
    assert view.services_total == Decimal("750000")
    assert [d.id for d in view.work_details] == ids


def test_negative_days_are_rejected(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)
    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), ids)

    with pytest.raises(ValidationError):
        svc.save_general_service(actor(), bastp_id, {"service_type_id": "1", "total_days": "-1"})


def test_invoiced_bastp_cannot_be_deleted(tmp_path):
    yard = Yard()
    wo = yard.completed_work_order()
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    svc = _service(tmp_path, yard)
    bastp_id = svc.create_bastp(actor(), _form(wo.vessel_id), ids)
    yard.bastps.set_invoiced(bastp_id, invoiced=True, invoiced_at=None)

    with pytest.raises(ValidationError):
        svc.delete_bastp(actor(), bastp_id)


def test_unknown_status_filter(tmp_path):
    with pytest.raises(ValidationError):
        _service(tmp_path, Yard()).list_bastps(status="ARCHIVED")
