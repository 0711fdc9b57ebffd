from __future__ import annotations

from datetime import date

import pytest

from src.shipyard_report.shipyard_report.core.constants import EVIDENCE_BUCKET, PERMIT_BUCKET
from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.shipyard_report.shipyard_report.progress.model import ProgressFilter
from src.shipyard_report.shipyard_report.progress.service import ProgressService, parse_percentage
from src.shipyard_report.shipyard_report.storage.document_store import LocalDocumentStore
from src.shipyard_report.shipyard_report.storage.model import UploadedFile
from tests.fakes import Yard, actor

PNG = UploadedFile(filename="hull.png", content_type="image/png", data=b"\x89PNG fake image")


def _service(tmp_path, yard: Yard) -> ProgressService:
    store = LocalDocumentStore(tmp_path, secret_key="test", buckets=(EVIDENCE_BUCKET, PERMIT_BUCKET))
    return ProgressService(
        yard.progress, yard.details, yard.work_orders, store, yard.activity, clock=lambda: 1_700_000_000.0
    )


@pytest.mark.parametrize("raw,expected", [("0", 0), ("100", 100), (" 45 ", 45), ("70.0", 70)])
def test_parse_percentage_accepts_whole_numbers(raw, expected):
    assert parse_percentage(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "abc", "101", "-1", "12.5", "NaN"])
def test_parse_percentage_rejects_invalid(raw):
    with pytest.raises(ValidationError):
        parse_percentage(raw)


def test_add_progress_with_evidence_stores_file(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    d = yard.details.add(wo.id)
    svc = _service(tmp_path, yard)

    progress_id = svc.add_progress(
        actor(Role.PRODUCTION),
        work_details_id=d.id,
        form={"progress_percentage": "60", "report_date": "2025-02-03", "notes": "First coat"},
        evidence=PNG,
    )

    record = yard.progress.get(progress_id)
    assert record.progress_percentage == 60
    assert record.storage_path.startswith(f"work-details-{d.id}/")
    assert (tmp_path / EVIDENCE_BUCKET / record.storage_path).read_bytes() == PNG.data
    assert yard.logs.entries[-1].table_name == "work_progress"


def test_evidence_must_be_an_image(tmp_path):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)
    pdf = UploadedFile(filename="report.pdf", content_type="application/pdf", data=b"%PDF-1.4")

    with pytest.raises(ValidationError):
        _service(tmp_path, yard).add_progress(
            actor(), work_details_id=d.id, form={"progress_percentage": "10", "report_date": "2025-02-03"}, evidence=pdf
        )
    assert yard.progress.rows == {}


def test_finance_cannot_report_progress(tmp_path):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)

    with pytest.raises(AuthorizationError):
        _service(tmp_path, yard).add_progress(
            actor(Role.FINANCE), work_details_id=d.id, form={"progress_percentage": "10", "report_date": "2025-02-03"}
        )


def test_add_progress_unknown_work_details(tmp_path):
    with pytest.raises(NotFoundError):
        _service(tmp_path, Yard()).add_progress(
            actor(), work_details_id=99, form={"progress_percentage": "10", "report_date": "2025-02-03"}
        )


def test_delete_progress_removes_evidence(tmp_path):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)
    svc = _service(tmp_path, yard)
    progress_id = svc.add_progress(
        actor(), work_details_id=d.id, form={"progress_percentage": "20", "report_date": "2025-02-03"}, evidence=PNG
    )
    path = tmp_path / EVIDENCE_BUCKET / yard.progress.get(progress_id).storage_path

    svc.delete_progress(actor(), progress_id)

    assert yard.progress.get(progress_id) is None
    assert not path.exists()


def test_evidence_token_requires_evidence(tmp_path):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)
    record = yard.progress.add(d.id, 30, date(2025, 2, 1))

    with pytest.raises(NotFoundError):
        _service(tmp_path, yard).evidence_token(record.id)


def test_history_is_newest_first(tmp_path):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)
    yard.progress.add(d.id, 20, date(2025, 2, 1))
    yard.progress.add(d.id, 70, date(2025, 2, 9))
    yard.progress.add(d.id, 40, date(2025, 2, 4))

    history = _service(tmp_path, yard).history(d.id)

    assert [r.progress_percentage for r in history] == [70, 40, 20]


def test_list_progress_rejects_inverted_date_range(tmp_path):
    flt = ProgressFilter(date_from=date(2025, 3, 1), date_to=date(2025, 2, 1))
    with pytest.raises(ValidationError):
        _service(tmp_path, Yard()).list_progress(flt)


def test_progress_stats(tmp_path):
    yard = Yard()
    yard.completed_work_order("WO-1")
    wo = yard.work_orders.add(yard.vessels.add("MV Two").id, "WO-2")
    d = yard.details.add(wo.id)
    yard.progress.add(d.id, 50, date(2025, 2, 1), storage_path="work-details-3/a.png")

    stats = _service(tmp_path, yard).progress_stats()

    assert stats.total_work_orders == 2
    assert stats.completed_work_orders == 1
    assert stats.total_work_details == 3
    assert stats.completed_work_details == 2
    assert stats.average_progress == 83
    assert stats.details_with_evidence == 1


def test_progress_stats_rounds_half_up_like_work_orders(tmp_path):
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    for pct in (50, 51):
        yard.progress.add(yard.details.add(wo.id).id, pct, date(2025, 2, 1))

    assert _service(tmp_path, yard).progress_stats().average_progress == 51


def test_update_progress_discards_new_evidence_when_the_write_fails(tmp_path, monkeypatch):
    yard = Yard()
    d = yard.details.add(yard.work_orders.add(yard.vessels.add().id).id)
    record = yard.progress.add(d.id, 40, date(2025, 2, 1))

    def fail(*args, **kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(yard.progress, "update", fail)

    with pytest.raises(RuntimeError):
        _service(tmp_path, yard).update_progress(
            actor(Role.PRODUCTION),
            record.id,
            form={"progress_percentage": "55", "report_date": "2025-02-02"},
            evidence=PNG,
        )
    assert not list((tmp_path / EVIDENCE_BUCKET).rglob("*.png"))
