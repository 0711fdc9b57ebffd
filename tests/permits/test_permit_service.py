from __future__ import annotations

import pytest

from src.shipyard_report.shipyard_report.core.constants import PERMIT_BUCKET
from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.shipyard_report.shipyard_report.permits.service import PermitService
from src.shipyard_report.shipyard_report.storage.document_store import LocalDocumentStore
from src.shipyard_report.shipyard_report.storage.model import UploadedFile
from tests.fakes import Yard, actor


class Ticker:
    def __init__(self):
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        self.now += 1
        return self.now


def _service(tmp_path, yard: Yard):
    store = LocalDocumentStore(tmp_path, secret_key="test", buckets=(PERMIT_BUCKET,))
    return PermitService(yard.permits, yard.work_orders, store, yard.activity, clock=Ticker()), store


def _pdf(name: str = "permit.pdf") -> UploadedFile:
    return UploadedFile(filename=name, content_type="application/pdf", data=b"%PDF-1.4 " + name.encode())


def test_first_upload_then_replace_keeps_one_permit(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    svc, store = _service(tmp_path, yard)

    first_id = svc.upload_permit(actor(), wo.id, _pdf("hot work.pdf"))
    first_path = yard.permits.get(first_id).storage_path
    assert first_path.startswith(f"wo-{wo.id}/permit-{wo.id}-")
    assert store.exists(PERMIT_BUCKET, first_path)

    second_id = svc.upload_permit(actor(), wo.id, _pdf("hot work rev1.pdf"))

    assert second_id == first_id
    assert len(yard.permits.rows) == 1
    permit = svc.permit_for_work_order(wo.id)
    assert permit.original_name == "hot work rev1.pdf"
    assert store.exists(PERMIT_BUCKET, permit.storage_path)
    assert not store.exists(PERMIT_BUCKET, first_path)
    assert [e.action.value for e in yard.logs.entries] == ["create", "update"]


def test_non_pdf_permit_is_rejected(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    svc, _ = _service(tmp_path, yard)
    image = UploadedFile(filename="permit.jpg", content_type="image/jpeg", data=b"jpeg")

    with pytest.raises(ValidationError):
        svc.upload_permit(actor(), wo.id, image)


def test_unknown_work_order(tmp_path):
    svc, _ = _service(tmp_path, Yard())
    with pytest.raises(NotFoundError):
        svc.upload_permit(actor(), 42, _pdf())


def test_finance_cannot_upload(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    svc, _ = _service(tmp_path, yard)
    with pytest.raises(AuthorizationError):
        svc.upload_permit(actor(Role.FINANCE), wo.id, _pdf())


def test_delete_permit_removes_file_and_token_fails(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    svc, store = _service(tmp_path, yard)
    permit_id = svc.upload_permit(actor(), wo.id, _pdf())
    path = yard.permits.get(permit_id).storage_path
    assert svc.permit_token(permit_id)

    svc.delete_permit(actor(), permit_id)

    assert not store.exists(PERMIT_BUCKET, path)
    with pytest.raises(NotFoundError):
        svc.permit_token(permit_id)
