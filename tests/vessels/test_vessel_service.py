from __future__ import annotations

from datetime import date

import pytest

from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.shipyard_report.shipyard_report.vessels.service import VesselService, parse_vessel_input
from src.shipyard_report.shipyard_report.work_orders.service import WorkOrderService
from tests.fakes import Yard, actor


def _vessels(yard: Yard) -> VesselService:
    return VesselService(yard.vessels, yard.work_orders, yard.details, yard.progress, yard.activity)


def _work_orders(yard: Yard) -> WorkOrderService:
    return WorkOrderService(yard.work_orders, yard.vessels, yard.details, yard.progress, yard.activity)


def test_parse_vessel_input():
    data = parse_vessel_input({"name": " MV Bahari ", "type": "Bulk Carrier", "company": "PT Bahari", "built_year": "2009"})
    assert data.name == "MV Bahari"
    assert data.built_year == 2009
    assert data.imo_number is None


@pytest.mark.parametrize(
    "form",
    [
        {"type": "Tug", "company": "PT A"},
        {"name": "X", "type": "Tug", "company": "PT A", "built_year": "old"},
        {"name": "X", "type": "Tug", "company": "PT A", "built_year": "1500"},
    ],
)
def test_parse_vessel_input_rejects(form):
    with pytest.raises(ValidationError):
        parse_vessel_input(form)


def test_create_and_update_vessel_logs_changes():
    yard = Yard()
    svc = _vessels(yard)
    vessel_id = svc.create_vessel(actor(Role.PPIC), {"name": "MV Bahari", "type": "Tug", "company": "PT Bahari"})

    svc.update_vessel(actor(Role.PPIC), vessel_id, {"name": "MV Bahari", "type": "Tugboat", "company": "PT Bahari"})

    assert svc.get_vessel(vessel_id).type == "Tugboat"
    assert yard.logs.entries[-1].changes == {"type": {"old": "Tug", "new": "Tugboat"}}


def test_finance_cannot_manage_vessels():
    with pytest.raises(AuthorizationError):
        _vessels(Yard()).create_vessel(actor(Role.FINANCE), {"name": "MV X", "type": "Tug", "company": "PT X"})


def test_vessel_with_work_orders_cannot_be_deleted():
    yard = Yard()
    vessel = yard.vessels.add()
    wo = yard.work_orders.add(vessel.id)
    svc = _vessels(yard)

    with pytest.raises(ValidationError, match="still has work orders"):
        svc.delete_vessel(actor(), vessel.id)

    yard.work_orders.soft_delete(wo.id)
    svc.delete_vessel(actor(), vessel.id)
    with pytest.raises(NotFoundError):
        svc.get_vessel(vessel.id)


def test_vessel_work_orders_carry_progress():
    yard = Yard()
    vessel = yard.vessels.add()
    wo = yard.completed_work_order(vessel=vessel)
    other = yard.work_orders.add(vessel.id, "WO-002")

    data = _vessels(yard).get_vessel_work_orders(vessel.id)

    by_id = {row.work_order.id: row for row in data.work_orders}
    assert by_id[wo.id].overall_progress == 100
    assert by_id[wo.id].detail_count == 2
    assert by_id[other.id].overall_progress == 0
    assert not by_id[other.id].has_progress_data


def test_work_order_requires_existing_vessel():
    form = {"vessel_id": "9", "shipyard_wo_number": "WO-9", "shipyard_wo_date": "2025-01-06"}
    with pytest.raises(ValidationError, match="vessel does not exist"):
        _work_orders(Yard()).create_work_order(actor(), form)


def test_list_work_orders_is_paginated():
    yard = Yard()
    vessel = yard.vessels.add()
    for n in range(12):
        yard.work_orders.add(vessel.id, f"WO-{n:03d}", wo_date=date(2025, 1, 1))

    page = _work_orders(yard).list_work_orders(page=2, page_size=10)

    assert page.total == 12
    assert page.total_pages == 2
    assert len(page.items) == 2
    assert not page.has_next
