from __future__ import annotations

import io
from datetime import date

import pandas as pd
import pytest

from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, ValidationError
from src.shipyard_report.shipyard_report.exports.service import ExportService
from tests.fakes import Yard, actor


def _service(yard: Yard) -> ExportService:
    return ExportService(
        yard.vessels,
        yard.work_orders,
        yard.details,
        yard.progress,
        yard.invoices,
        yard.permits,
        yard.activity,
        today=lambda: date(2025, 3, 10),
    )


def test_export_work_orders_csv():
    yard = Yard()
    wo = yard.completed_work_order("WO-CSV")

    export = _service(yard).export(actor(Role.FINANCE), entity="work_orders", fmt="csv")

    assert export.filename == "work_orders_2025-03-10.csv"
    assert export.mimetype == "text/csv"
    df = pd.read_csv(io.BytesIO(export.data))
    assert df.loc[0, "shipyard_wo_number"] == "WO-CSV"
    assert df.loc[0, "overall_progress"] == 100
    assert df.loc[0, "vessel"] == "MV Sinar Laut"
    assert int(df.loc[0, "id"]) == wo.id


def test_export_work_details_xlsx_filtered_by_vessel():
    yard = Yard()
    keep = yard.vessels.add("MV Keep")
    yard.completed_work_order("WO-KEEP", vessel=keep, details=1)
    yard.completed_work_order("WO-DROP", vessel=yard.vessels.add("MV Drop"), details=3)

    export = _service(yard).export(actor(), entity="work_details", fmt="xlsx", vessel_ids=[keep.id])

    assert export.filename.endswith(".xlsx")
    df = pd.read_excel(io.BytesIO(export.data), sheet_name="work_details", engine="openpyxl")
    assert list(df["shipyard_wo_number"]) == ["WO-KEEP"]


def test_export_progress_rows():
    yard = Yard()
    yard.completed_work_order(details=2)
    rows = _service(yard).rows_for("work_progress")
    assert [r["progress_percentage"] for r in rows] == [100, 100]


def test_export_rejects_unknown_entity_format_and_empty_data():
    svc = _service(Yard())
    with pytest.raises(ValidationError, match="Unknown export type"):
        svc.export(actor(), entity="salaries")
    with pytest.raises(ValidationError, match="Unknown export format"):
        svc.export(actor(), entity="vessels", fmt="pdf")
    with pytest.raises(ValidationError, match="No data"):
        svc.export(actor(), entity="vessels")


def test_import_vessels_skips_duplicates_and_reports_bad_rows():
    yard = Yard()
    yard.vessels.add("MV Existing", company="PT Lama")
    content = (
        "Name,Type,Company,IMO_Number,Built_Year\n"
        "MV Baru,Tanker,PT Baru,IMO1234567,2010\n"
        "MV Existing,Tug,PT Lama,,\n"
        "MV Baru,Tanker,PT Baru,,\n"
        ",Tug,PT Kosong,,\n"
        "MV Tahun,Tug,PT Tahun,,tua\n"
    ).encode()

    result = _service(yard).import_data(actor(Role.PPIC), "vessels", content)

    assert result.imported_count == 1
    assert result.skipped_count == 2
    assert result.errors == ["Row 5: missing name", "Row 6: built_year must be a number"]
    assert result.success
    imported = yard.vessels.find_by_name_and_company(name="MV Baru", company="PT Baru")
    assert imported.imo_number == "IMO1234567"
    assert imported.built_year == 2010


def test_import_validate_only_writes_nothing():
    yard = Yard()
    result = _service(yard).import_data(
        actor(), "vessels", b"name,type,company\nMV A,Tug,PT A\n", validate_only=True
    )
    assert result.success
    assert "1 valid rows" in result.message
    assert yard.vessels.rows == {}


def test_import_requires_columns():
    with pytest.raises(ValidationError, match="Missing required columns: company"):
        _service(Yard()).import_data(actor(), "vessels", b"name,type\nMV A,Tug\n")


def test_import_without_skip_reports_duplicates():
    yard = Yard()
    yard.vessels.add("MV A", company="PT A")
    result = _service(yard).import_data(actor(), "vessels", b"name,type,company\nMV A,Tug,PT A\n", skip_duplicates=False)
    assert result.imported_count == 0
    assert not result.success
    assert "already exists" in result.errors[0]


def test_finance_cannot_import_vessels():
    with pytest.raises(AuthorizationError):
        _service(Yard()).import_data(actor(Role.FINANCE), "vessels", b"name,type,company\n")


def test_import_keeps_going_past_an_out_of_range_built_year():
    yard = Yard()
    content = b"name,type,company,built_year\nMV A,Tanker,PT X,inf\nMV B,Tug,PT X,1998\n"

    result = _service(yard).import_data(actor(), "vessels", content)

    assert result.errors == ["Row 2: built_year must be a number"]
    assert result.imported_count == 1
    assert yard.vessels.find_by_name_and_company(name="MV B", company="PT X").built_year == 1998


def test_import_work_orders_overwrites_matching_numbers():
    yard = Yard()
    vessel = yard.vessels.add()
    existing = yard.work_orders.add(vessel.id, "WO-001")
    content = (
        "vessel_id,shipyard_wo_number,shipyard_wo_date,work_type\n"
        f"{vessel.id},wo-001,2025-02-01,Docking\n"
        f"{vessel.id},WO-002,2025-02-03,Repair\n"
        "99,WO-003,2025-02-03,\n"
    ).encode()

    result = _service(yard).import_data(actor(Role.PPIC), "work_orders", content, overwrite=True)

    assert (result.imported_count, result.updated_count) == (1, 1)
    assert result.errors == ["Row 4: vessel_id 99 does not exist"]
    updated = yard.work_orders.get(existing.id)
    assert updated.work_type == "Docking"
    assert updated.shipyard_wo_date == date(2025, 2, 1)
    assert [e.description for e in yard.logs.entries] == [
        "Overwrote work order wo-001 from import",
        "Imported work order WO-002",
    ]


def test_import_work_details_validates_each_row():
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    yard.details.add(wo.id, "Hull blasting")
    header = (
        "work_order_id,description,location,work_location,work_type,quantity,uom,"
        "planned_start_date,target_close_date,period_close_target\n"
    )
    content = (
        header
        + f"{wo.id},HULL BLASTING,Dock 2,Hull,Blasting,120,m2,2025-01-10,2025-02-10,February 2025\n"
        + f"{wo.id},Propeller polish,Dock 2,Stern,Polishing,1,unit,2025-01-12,2025-01-20,January 2025\n"
        + f"{wo.id},Anodes,Dock 2,Hull,Replacement,nan,pcs,2025-01-12,2025-01-20,January 2025\n"
        + "99,Rudder,Dock 2,Stern,Repair,1,unit,2025-01-12,2025-01-20,January 2025\n"
    ).encode()

    result = _service(yard).import_data(actor(), "work_details", content)

    assert (result.imported_count, result.skipped_count) == (1, 1)
    assert result.errors == ["Row 4: Quantity must be a number", "Row 5: work_order_id 99 does not exist"]
    imported = [d for d in yard.details.list_for_work_orders([wo.id]) if d.description == "Propeller polish"]
    assert imported[0].quantity == 1
    assert imported[0].user_id == 1


def test_import_progress_overwrite_by_id_keeps_evidence():
    yard = Yard()
    wo = yard.work_orders.add(yard.vessels.add().id)
    detail = yard.details.add(wo.id)
    report = yard.progress.add(detail.id, 40, date(2025, 1, 20), storage_path="evidence/a.png")
    content = (
        "id,work_details_id,progress_percentage,report_date,notes\n"
        f"{report.id},{detail.id},60,2025-01-21,Second coat\n"
        f",{detail.id},80,2025-01-25,\n"
        f",{detail.id},120,2025-01-26,\n"
    ).encode()

    result = _service(yard).import_data(actor(), "work_progress", content, overwrite=True)

    assert (result.imported_count, result.updated_count) == (1, 1)
    assert result.errors == ["Row 4: Progress percentage must be between 0 and 100"]
    overwritten = yard.progress.get(report.id)
    assert overwritten.progress_percentage == 60
    assert overwritten.report_date == date(2025, 1, 21)
    assert overwritten.storage_path == "evidence/a.png"
    assert sorted(r.progress_percentage for r in yard.progress.list_for_details([detail.id])) == [60, 80]


def test_import_id_of_a_record_under_another_parent_is_rejected():
    yard = Yard()
    vessel = yard.vessels.add()
    first = yard.details.add(yard.work_orders.add(vessel.id, "WO-1").id)
    other = yard.details.add(yard.work_orders.add(vessel.id, "WO-2").id)
    report = yard.progress.add(first.id, 40, date(2025, 1, 20))
    content = f"id,work_details_id,progress_percentage,report_date\n{report.id},{other.id},50,2025-01-22\n".encode()

    result = _service(yard).import_data(actor(), "work_progress", content, overwrite=True)

    assert result.errors == [f"Row 2: id {report.id} belongs to work details {first.id}"]
    assert yard.progress.get(report.id).progress_percentage == 40


def test_import_entity_and_permissions():
    svc = _service(Yard())
    with pytest.raises(ValidationError, match="Unknown import type"):
        svc.import_data(actor(), "invoices", b"id\n1\n")
    with pytest.raises(AuthorizationError):
        svc.import_data(actor(Role.FINANCE), "work_progress", b"work_details_id\n")
    assert svc.importable_entities(actor(Role.FINANCE)) == []
    assert svc.importable_entities(actor(Role.PPIC)) == ["vessels", "work_orders", "work_details", "work_progress"]
