from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from werkzeug.datastructures import MultiDict

from src.shipyard_report.shipyard_report.bastp.controller import material_rows_from_form
from src.shipyard_report.shipyard_report.bastp.materials import MaterialControlService, validate_material_row
from src.shipyard_report.shipyard_report.bastp.model import BastpInput
from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from tests.fakes import Yard, actor


def _service(yard: Yard) -> MaterialControlService:
    return MaterialControlService(yard.materials, yard.bastps, yard.details, yard.activity)


def _bastp(yard: Yard):
    wo = yard.completed_work_order(details=2)
    ids = [d.id for d in yard.details.list_for_work_orders([wo.id])]
    bastp_id = yard.bastps.create(
        BastpInput(number="BASTP/7", date=date(2025, 3, 1), delivery_date=date(2025, 3, 2), vessel_id=wo.vessel_id),
        work_details_ids=ids,
        user_id=1,
    )
    return bastp_id, ids


def test_validate_material_row():
    data, errors = validate_material_row({"material_id": "2", "size": " ", "amount": "12.5", "uom": "pcs"})
    assert errors == []
    assert data.amount == Decimal("12.5")
    assert data.size is None


@pytest.mark.parametrize(
    "row,message",
    [
        ({"material_id": "", "amount": "1", "uom": "kg"}, "Select a material from the list"),
        ({"material_id": "1", "amount": "0", "uom": "kg"}, "Amount must be greater than 0"),
        ({"material_id": "1", "amount": "NaN", "uom": "kg"}, "Amount must be a number"),
        ({"material_id": "1", "amount": "3", "uom": ""}, "Unit of measurement is required"),
    ],
)
def test_invalid_material_rows(row, message):
    data, errors = validate_material_row(row)
    assert data is None
    assert message in errors


def test_add_materials_to_a_bastp_work_detail():
    yard = Yard()
    bastp_id, (first, second) = _bastp(yard)
    svc = _service(yard)

    ids = svc.add_materials(
        actor(Role.PPIC),
        bastp_id,
        first,
        [
            {"material_id": "1", "size": "2400x6000", "amount": "4", "uom": "sheet"},
            {"material_id": "2", "amount": "16", "uom": "pcs"},
        ],
    )

    assert len(ids) == 2
    view = svc.materials_view(bastp_id, work_details_id=first)
    assert view.selected.id == first
    assert [u.material for u in view.usages] == ["Zinc Anode", "Steel Plate"]
    assert view.counts == {first: 2}
    assert second not in view.counts
    assert yard.logs.entries[-1].table_name == "material_control"


def test_add_materials_is_all_or_nothing():
    yard = Yard()
    bastp_id, (first, _) = _bastp(yard)

    with pytest.raises(ValidationError, match="Material #2: Amount must be greater than 0"):
        _service(yard).add_materials(
            actor(),
            bastp_id,
            first,
            [{"material_id": "1", "amount": "4", "uom": "sheet"}, {"material_id": "2", "amount": "0", "uom": "pcs"}],
        )
    assert yard.materials.usages == {}


def test_materials_only_for_work_details_of_the_bastp():
    yard = Yard()
    bastp_id, _ = _bastp(yard)
    stranger = yard.details.add(yard.work_orders.add(yard.vessels.add("MV Lain").id, "WO-9").id)

    with pytest.raises(ValidationError, match="not part of this BASTP"):
        _service(yard).add_materials(actor(), bastp_id, stranger.id, [{"material_id": "1", "amount": "1", "uom": "kg"}])


def test_unknown_catalogue_item_is_rejected():
    yard = Yard()
    bastp_id, (first, _) = _bastp(yard)

    with pytest.raises(ValidationError, match="does not exist"):
        _service(yard).add_materials(actor(), bastp_id, first, [{"material_id": "99", "amount": "1", "uom": "kg"}])


def test_invoiced_bastp_materials_are_frozen():
    yard = Yard()
    bastp_id, (first, _) = _bastp(yard)
    svc = _service(yard)
    [usage_id] = svc.add_materials(actor(), bastp_id, first, [{"material_id": "1", "amount": "1", "uom": "kg"}])
    yard.bastps.set_invoiced(bastp_id, invoiced=True, invoiced_at=None)

    with pytest.raises(ValidationError, match="Invoiced BASTP"):
        svc.delete_material(actor(), usage_id)
    with pytest.raises(ValidationError, match="Invoiced BASTP"):
        svc.add_materials(actor(), bastp_id, first, [{"material_id": "2", "amount": "1", "uom": "pcs"}])


def test_update_and_delete_material():
    yard = Yard()
    bastp_id, (first, _) = _bastp(yard)
    svc = _service(yard)
    [usage_id] = svc.add_materials(actor(), bastp_id, first, [{"material_id": "1", "amount": "1", "uom": "kg"}])

    svc.update_material(actor(), usage_id, {"material_id": "1", "size": "10 mm", "amount": "2.5", "uom": "kg"})
    assert yard.materials.get_usage(usage_id).amount == Decimal("2.5")
    assert yard.logs.entries[-1].changes["amount"] == {"old": "1", "new": "2.5"}

    removed = svc.delete_material(actor(), usage_id)
    assert removed.work_details_id == first
    with pytest.raises(NotFoundError):
        svc.delete_material(actor(), usage_id)


def test_finance_cannot_record_materials():
    yard = Yard()
    bastp_id, (first, _) = _bastp(yard)

    with pytest.raises(AuthorizationError):
        _service(yard).add_materials(
            actor(Role.FINANCE), bastp_id, first, [{"material_id": "1", "amount": "1", "uom": "kg"}]
        )


def test_catalogue_rejects_duplicates():
    yard = Yard()
    svc = _service(yard)

    item_id = svc.add_catalogue_item(actor(), {"material": "Epoxy Primer", "category": "Paint"})
    assert yard.materials.get_item(item_id).label == "Epoxy Primer"

    with pytest.raises(ValidationError, match="already in the material list"):
        svc.add_catalogue_item(actor(), {"material": "steel plate", "specification": "grade a, 10 mm"})


def test_material_rows_from_form_drops_blank_rows():
    form = MultiDict(
        [
            ("material_id[]", "1"),
            ("material_id[]", ""),
            ("size[]", ""),
            ("size[]", ""),
            ("amount[]", "3"),
            ("amount[]", ""),
            ("uom[]", "pcs"),
            ("uom[]", ""),
        ]
    )
    assert material_rows_from_form(form) == [{"material_id": "1", "size": "", "amount": "3", "uom": "pcs"}]
