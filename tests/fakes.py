"""In-memory repositories shared by the service tests."""
from __future__ import annotations

import sys
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from src.shipyard_report.shipyard_report.activity_log.model import ActivityLog
from src.shipyard_report.shipyard_report.activity_log.service import ActivityLogService
from src.shipyard_report.shipyard_report.bastp.model import (
    Bastp,
    GeneralService,
    GeneralServiceType,
    MaterialItem,
    MaterialUsage,
)
from src.shipyard_report.shipyard_report.core.enums import BastpStatus, Role
from src.shipyard_report.shipyard_report.invoices.model import InvoiceDetails, InvoiceLine, InvoiceStats
from src.shipyard_report.shipyard_report.permits.model import PermitToWork
from src.shipyard_report.shipyard_report.progress.model import ProgressListRow, WorkProgress
from src.shipyard_report.shipyard_report.users.model import Actor, Profile
from src.shipyard_report.shipyard_report.verification.model import OperationVerification, WorkVerification
from src.shipyard_report.shipyard_report.vessels.model import Vessel
from src.shipyard_report.shipyard_report.work_details.model import WorkDetails
from src.shipyard_report.shipyard_report.work_orders.model import WorkOrder


def actor(role: Role = Role.MASTER, user_id: int = 1) -> Actor:
    return Actor(user_id=user_id, name=f"{role.value.title()} User", email=f"{role.value.lower()}@yard.test", role=role)


class InMemoryVessels:
    def __init__(self):
        self.rows: dict[int, Vessel] = {}
        self._id = 0

    def add(self, name: str = "MV Sinar Laut", *, type: str = "Tanker", company: str = "PT Samudera") -> Vessel:
        self._id += 1
        vessel = Vessel(id=self._id, name=name, type=type, company=company)
        self.rows[vessel.id] = vessel
        return vessel

    def get(self, vessel_id: int) -> Optional[Vessel]:
        return self.rows.get(vessel_id)

    def list_all(self, *, search=None, vessel_ids=None):
        items = list(self.rows.values())
        if search:
            items = [v for v in items if search.lower() in f"{v.name} {v.company}".lower()]
        if vessel_ids is not None:
            items = [v for v in items if v.id in vessel_ids]
        return items

    def find_by_name_and_company(self, *, name: str, company: str):
        for v in self.rows.values():
            if v.name.lower() == name.lower() and v.company.lower() == company.lower():
                return v
        return None

    def create(self, data) -> int:
        self._id += 1
        self.rows[self._id] = Vessel(id=self._id, **vars(data))
        return self._id

    def update(self, vessel_id: int, data) -> bool:
        if vessel_id not in self.rows:
            return False
        self.rows[vessel_id] = Vessel(id=vessel_id, **vars(data))
        return True

    def soft_delete(self, vessel_id: int) -> bool:
        return self.rows.pop(vessel_id, None) is not None


class InMemoryWorkOrders:
    def __init__(self, vessels: InMemoryVessels):
        self.vessels = vessels
        self.rows: dict[int, WorkOrder] = {}
        self._id = 0

    def _joined(self, wo: WorkOrder) -> WorkOrder:
        vessel = self.vessels.get(wo.vessel_id)
        if not vessel:
            return wo
        return replace(wo, vessel_name=vessel.name, vessel_type=vessel.type, vessel_company=vessel.company)

    def add(self, vessel_id: int, number: str = "WO-001", *, wo_date: date = date(2025, 1, 6)) -> WorkOrder:
        self._id += 1
        wo = WorkOrder(id=self._id, vessel_id=vessel_id, shipyard_wo_number=number, shipyard_wo_date=wo_date)
        self.rows[wo.id] = wo
        return self._joined(wo)

    def get(self, work_order_id: int) -> Optional[WorkOrder]:
        wo = self.rows.get(work_order_id)
        return self._joined(wo) if wo else None

    def list_all(self, *, search=None, vessel_id=None, vessel_ids=None):
        items = [self._joined(wo) for wo in self.rows.values()]
        if search:
            items = [wo for wo in items if search.lower() in wo.shipyard_wo_number.lower()]
        if vessel_id is not None:
            items = [wo for wo in items if wo.vessel_id == vessel_id]
        if vessel_ids is not None:
            items = [wo for wo in items if wo.vessel_id in vessel_ids]
        return items

    def list_by_ids(self, work_order_ids):
        return [self.get(i) for i in work_order_ids if i in self.rows]

    def create(self, data, *, user_id: int) -> int:
        self._id += 1
        self.rows[self._id] = WorkOrder(id=self._id, user_id=user_id, **vars(data))
        return self._id

    def update(self, work_order_id: int, data) -> bool:
        if work_order_id not in self.rows:
            return False
        self.rows[work_order_id] = WorkOrder(id=work_order_id, **vars(data))
        return True

    def soft_delete(self, work_order_id: int) -> bool:
        return self.rows.pop(work_order_id, None) is not None


class InMemoryWorkDetails:
    def __init__(self):
        self.rows: dict[int, WorkDetails] = {}
        self._id = 0

    def add(
        self,
        work_order_id: int,
        description: str = "Hull blasting",
        *,
        planned: date = date(2025, 1, 10),
        target: date = date(2025, 2, 10),
    ) -> WorkDetails:
        self._id += 1
        d = WorkDetails(
            id=self._id,
            work_order_id=work_order_id,
            description=description,
            location="Dock 2",
            work_location="Hull",
            work_type="Blasting",
            quantity=Decimal("120"),
            uom="m2",
            planned_start_date=planned,
            target_close_date=target,
            period_close_target="February 2025",
        )
        self.rows[d.id] = d
        return d

    def get(self, work_details_id: int) -> Optional[WorkDetails]:
        return self.rows.get(work_details_id)

    def list_for_work_orders(self, work_order_ids):
        return [d for d in self.rows.values() if d.work_order_id in work_order_ids]

    def list_by_ids(self, work_details_ids):
        return [self.rows[i] for i in work_details_ids if i in self.rows]

    def insert_many(self, work_order_id: int, rows, *, user_id: int) -> list[int]:
        ids = []
        for data in rows:
            self._id += 1
            self.rows[self._id] = WorkDetails(id=self._id, work_order_id=work_order_id, user_id=user_id, **vars(data))
            ids.append(self._id)
        return ids

    def update(self, work_details_id: int, data) -> bool:
        old = self.rows.get(work_details_id)
        if not old:
            return False
        self.rows[work_details_id] = WorkDetails(id=old.id, work_order_id=old.work_order_id, **vars(data))
        return True

    def soft_delete(self, work_details_id: int) -> bool:
        return self.rows.pop(work_details_id, None) is not None


class InMemoryProgress:
    def __init__(self, details: Optional[InMemoryWorkDetails] = None, work_orders: Optional[InMemoryWorkOrders] = None):
        self.details = details
        self.work_orders = work_orders
        self.rows: dict[int, WorkProgress] = {}
        self._id = 0

    def add(
        self,
        work_details_id: int,
        percentage: int,
        report_date: date,
        *,
        created_at: Optional[datetime] = None,
        storage_path: Optional[str] = None,
    ) -> WorkProgress:
        self._id += 1
        record = WorkProgress(
            id=self._id,
            work_details_id=work_details_id,
            progress_percentage=percentage,
            report_date=report_date,
            storage_path=storage_path,
            created_at=created_at,
        )
        self.rows[record.id] = record
        return record

    def get(self, progress_id: int) -> Optional[WorkProgress]:
        return self.rows.get(progress_id)

    def list_for_details(self, work_details_ids):
        return [r for r in self.rows.values() if r.work_details_id in work_details_ids]

    def search(self, flt, *, limit=None, offset: int = 0):
        rows = []
        for r in self.rows.values():
            d = self.details.get(r.work_details_id)
            wo = self.work_orders.get(d.work_order_id)
            if flt.vessel_ids is not None and wo.vessel_id not in flt.vessel_ids:
                continue
            if flt.work_order_id is not None and wo.id != flt.work_order_id:
                continue
            rows.append(
                ProgressListRow(
                    progress=r,
                    work_details_description=d.description,
                    work_details_location=d.location,
                    work_order_id=wo.id,
                    shipyard_wo_number=wo.shipyard_wo_number,
                    vessel_id=wo.vessel_id,
                    vessel_name=wo.vessel_name,
                )
            )
        total = len(rows)
        if limit is not None:
            rows = rows[offset : offset + limit]
        return rows, total

    def insert(self, *, work_details_id, progress_percentage, report_date, notes, storage_path, user_id) -> int:
        self._id += 1
        self.rows[self._id] = WorkProgress(
            id=self._id,
            work_details_id=work_details_id,
            progress_percentage=progress_percentage,
            report_date=report_date,
            notes=notes,
            storage_path=storage_path,
            user_id=user_id,
        )
        return self._id

    def update(self, progress_id: int, *, progress_percentage, report_date, notes, storage_path) -> bool:
        old = self.rows.get(progress_id)
        if not old:
            return False
        self.rows[progress_id] = replace(
            old,
            progress_percentage=progress_percentage,
            report_date=report_date,
            notes=notes,
            storage_path=storage_path,
        )
        return True

    def soft_delete(self, progress_id: int) -> bool:
        return self.rows.pop(progress_id, None) is not None


class InMemoryPermits:
    def __init__(self):
        self.rows: dict[int, PermitToWork] = {}
        self._id = 0

    def get(self, permit_id: int):
        return self.rows.get(permit_id)

    def get_for_work_order(self, work_order_id: int):
        for p in self.rows.values():
            if p.work_order_id == work_order_id:
                return p
        return None

    def list_all(self, *, search=None, vessel_ids=None):
        return list(self.rows.values())

    def insert(self, *, work_order_id, storage_path, original_name, user_id) -> int:
        self._id += 1
        self.rows[self._id] = PermitToWork(
            id=self._id,
            work_order_id=work_order_id,
            storage_path=storage_path,
            original_name=original_name,
            is_uploaded=True,
            user_id=user_id,
        )
        return self._id

    def replace_file(self, permit_id, *, storage_path, original_name, user_id) -> bool:
        old = self.rows.get(permit_id)
        if not old:
            return False
        self.rows[permit_id] = replace(old, storage_path=storage_path, original_name=original_name, user_id=user_id)
        return True

    def soft_delete(self, permit_id: int) -> bool:
        return self.rows.pop(permit_id, None) is not None


class InMemoryWorkVerifications:
    def __init__(self):
        self.rows: dict[int, WorkVerification] = {}
        self._id = 0

    def get(self, verification_id: int):
        return self.rows.get(verification_id)

    def get_active_for_details(self, work_details_id: int):
        for v in self.rows.values():
            if v.work_details_id == work_details_id:
                return v
        return None

    def list_active(self):
        return list(self.rows.values())

    def insert(self, *, work_details_id, verification_date, notes, user_id) -> int:
        self._id += 1
        self.rows[self._id] = WorkVerification(
            id=self._id,
            work_details_id=work_details_id,
            work_verification=True,
            verification_date=verification_date,
            verification_notes=notes,
            user_id=user_id,
        )
        return self._id

    def soft_delete(self, verification_id: int) -> bool:
        return self.rows.pop(verification_id, None) is not None


class InMemoryOperationVerifications:
    def __init__(self):
        self.rows: dict[int, OperationVerification] = {}
        self._id = 0

    def get(self, verification_id: int):
        return self.rows.get(verification_id)

    def get_active_for_work_order(self, work_order_id: int):
        for v in self.rows.values():
            if v.work_order_id == work_order_id:
                return v
        return None

    def list_active(self):
        return list(self.rows.values())

    def insert(self, *, work_order_id, verification_date, user_id) -> int:
        self._id += 1
        self.rows[self._id] = OperationVerification(
            id=self._id,
            work_order_id=work_order_id,
            progress_verification=True,
            verification_date=verification_date,
            user_id=user_id,
        )
        return self._id

    def soft_delete(self, verification_id: int) -> bool:
        return self.rows.pop(verification_id, None) is not None


class InMemoryBastps:
    def __init__(self):
        self.rows: dict[int, Bastp] = {}
        self.links: dict[int, list[int]] = {}
        self._id = 0

    def get(self, bastp_id: int):
        return self.rows.get(bastp_id)

    def list_all(self, *, status=None, vessel_id=None):
        items = list(self.rows.values())
        if status is not None:
            items = [b for b in items if b.status == status]
        if vessel_id is not None:
            items = [b for b in items if b.vessel_id == vessel_id]
        return items

    def create(self, data, *, work_details_ids, user_id) -> int:
        self._id += 1
        self.rows[self._id] = Bastp(id=self._id, status=BastpStatus.DRAFT, user_id=user_id, **vars(data))
        self.links[self._id] = list(work_details_ids)
        return self._id

    def work_details_ids(self, bastp_id: int):
        return list(self.links.get(bastp_id, []))

    def linked_work_details_ids(self) -> set[int]:
        return {i for bastp_id, ids in self.links.items() if bastp_id in self.rows for i in ids}

    def set_status(self, bastp_id, *, status, notes=None) -> bool:
        old = self.rows[bastp_id]
        self.rows[bastp_id] = replace(old, status=status, verification_notes=notes or old.verification_notes)
        return True

    def set_document(self, bastp_id, *, storage_path, uploaded_at) -> bool:
        self.rows[bastp_id] = replace(self.rows[bastp_id], storage_path=storage_path, bastp_upload_date=uploaded_at)
        return True

    def set_invoiced(self, bastp_id, *, invoiced, invoiced_at) -> bool:
        status = BastpStatus.INVOICED if invoiced else BastpStatus.READY_FOR_INVOICE
        self.rows[bastp_id] = replace(
            self.rows[bastp_id], status=status, is_invoiced=invoiced, invoiced_date=invoiced_at
        )
        return True

    def soft_delete(self, bastp_id: int) -> bool:
        return self.rows.pop(bastp_id, None) is not None


class InMemoryMaterials:
    def __init__(self):
        self.items = {
            1: MaterialItem(id=1, material="Steel Plate", specification="Grade A, 10 mm", category="Steel"),
            2: MaterialItem(id=2, material="Zinc Anode", category="Cathodic Protection"),
        }
        self.usages: dict[int, MaterialUsage] = {}
        self._item_id = len(self.items)
        self._id = 0

    def list_catalogue(self):
        return list(self.items.values())

    def get_item(self, material_id: int):
        return self.items.get(material_id)

    def add_item(self, *, material, specification, category) -> int:
        self._item_id += 1
        self.items[self._item_id] = MaterialItem(self._item_id, material, specification, category)
        return self._item_id

    def list_usage(self, bastp_id: int, *, work_details_id=None):
        return [
            u
            for u in sorted(self.usages.values(), key=lambda u: u.id, reverse=True)
            if u.bastp_id == bastp_id and (work_details_id is None or u.work_details_id == work_details_id)
        ]

    def usage_counts(self, bastp_id: int):
        counts: dict[int, int] = {}
        for u in self.list_usage(bastp_id):
            counts[u.work_details_id] = counts.get(u.work_details_id, 0) + 1
        return counts

    def get_usage(self, usage_id: int):
        return self.usages.get(usage_id)

    def insert_usage(self, *, bastp_id, work_details_id, rows, user_id):
        ids = []
        for row in rows:
            self._id += 1
            item = self.items[row.material_id]
            self.usages[self._id] = MaterialUsage(
                id=self._id,
                bastp_id=bastp_id,
                work_details_id=work_details_id,
                material=item.material,
                specification=item.specification,
                category=item.category,
                **vars(row),
            )
            ids.append(self._id)
        return ids

    def update_usage(self, usage_id, data) -> bool:
        if usage_id not in self.usages:
            return False
        self.usages[usage_id] = replace(self.usages[usage_id], **vars(data))
        return True

    def soft_delete_usage(self, usage_id: int) -> bool:
        return self.usages.pop(usage_id, None) is not None


class InMemoryGeneralServices:
    def __init__(self):
        self.types = {
            1: GeneralServiceType(id=1, service_name="Docking / Undocking", service_code="DOCKING", display_order=1),
            2: GeneralServiceType(id=2, service_name="Dock Rent", service_code="DOCK_RENT", display_order=2),
        }
        self.rows: dict[int, GeneralService] = {}
        self._id = 0

    def list_types(self):
        return list(self.types.values())

    def get_type(self, service_type_id: int):
        return self.types.get(service_type_id)

    def list_for_bastp(self, bastp_id: int):
        return [s for s in self.rows.values() if s.bastp_id == bastp_id]

    def get(self, service_id: int):
        return self.rows.get(service_id)

    def save(self, *, bastp_id, service_type_id, total_days, unit_price, payment_price, remarks) -> int:
        existing = next(
            (s for s in self.rows.values() if s.bastp_id == bastp_id and s.service_type_id == service_type_id), None
        )
        service_id = existing.id if existing else self._id + 1
        self._id = max(self._id, service_id)
        service_type = self.types[service_type_id]
        self.rows[service_id] = GeneralService(
            id=service_id,
            bastp_id=bastp_id,
            service_type_id=service_type_id,
            total_days=total_days,
            unit_price=unit_price,
            payment_price=payment_price,
            remarks=remarks,
            service_name=service_type.service_name,
            service_code=service_type.service_code,
        )
        return service_id

    def delete(self, service_id: int) -> bool:
        return self.rows.pop(service_id, None) is not None


class InMemoryInvoices:
    def __init__(self, details: Optional[InMemoryWorkDetails] = None):
        self.details = details
        self.rows: dict[int, InvoiceDetails] = {}
        self.line_rows: dict[int, list[InvoiceLine]] = {}
        self._id = 0
        self._line_id = 0

    def get(self, invoice_id: int):
        return self.rows.get(invoice_id)

    def search(self, *, search=None, paid=None, vessel_ids=None, limit=None, offset: int = 0):
        items = list(self.rows.values())
        if paid is not None:
            items = [i for i in items if i.payment_status == paid]
        total = len(items)
        if limit is not None:
            items = items[offset : offset + limit]
        return items, total

    def stats(self) -> InvoiceStats:
        paid = sum(1 for i in self.rows.values() if i.payment_status)
        return InvoiceStats(total=len(self.rows), paid=paid, unpaid=len(self.rows) - paid)

    def invoiced_work_order_ids(self) -> set[int]:
        return {i.work_order_id for i in self.rows.values()}

    def create(self, data, *, work_order_id, bastp_id, lines, user_id) -> int:
        self._id += 1
        self.rows[self._id] = InvoiceDetails(
            id=self._id, work_order_id=work_order_id, bastp_id=bastp_id, user_id=user_id, **vars(data)
        )
        self.line_rows[self._id] = []
        for work_details_id, price in lines:
            self._line_id += 1
            d = self.details.get(work_details_id) if self.details else None
            self.line_rows[self._id].append(
                InvoiceLine(
                    id=self._line_id,
                    invoice_details_id=self._id,
                    work_details_id=work_details_id,
                    payment_price=price,
                    description=d.description if d else None,
                    quantity=d.quantity if d else None,
                    uom=d.uom if d else None,
                )
            )
        return self._id

    def update(self, invoice_id, data, *, line_prices) -> bool:
        old = self.rows.get(invoice_id)
        if not old:
            return False
        self.rows[invoice_id] = replace(old, **vars(data))
        self.line_rows[invoice_id] = [
            replace(line, payment_price=line_prices.get(line.work_details_id, line.payment_price))
            for line in self.line_rows[invoice_id]
        ]
        return True

    def lines(self, invoice_id: int):
        return list(self.line_rows.get(invoice_id, []))

    def soft_delete(self, invoice_id: int) -> bool:
        self.line_rows.pop(invoice_id, None)
        return self.rows.pop(invoice_id, None) is not None


class InMemoryProfiles:
    def __init__(self):
        self.rows: dict[int, Profile] = {}
        self._id = 0

    def get_by_id(self, profile_id: int):
        return self.rows.get(profile_id)

    def get_by_email(self, email: str):
        for p in self.rows.values():
            if p.email.lower() == email.lower():
                return p
        return None

    def create(self, *, email, name, company, role, password_hash) -> int:
        self._id += 1
        self.rows[self._id] = Profile(
            id=self._id, email=email, name=name, company=company, role=role, password_hash=password_hash
        )
        return self._id

    def update_role(self, profile_id, *, role) -> bool:
        self.rows[profile_id] = replace(self.rows[profile_id], role=role)
        return True

    def set_active(self, profile_id, *, is_active) -> bool:
        self.rows[profile_id] = replace(self.rows[profile_id], is_active=is_active)
        return True

    def list_all(self) -> Sequence[Profile]:
        return list(self.rows.values())


class InMemoryActivityLogs:
    def __init__(self):
        self.entries: list[ActivityLog] = []

    def insert(self, **kw) -> int:
        entry = ActivityLog(id=len(self.entries) + 1, created_at=datetime(2025, 3, 1, 9, 0), **kw)
        self.entries.append(entry)
        return entry.id

    def search(self, flt, *, limit: int, offset: int):
        items = [e for e in self.entries if flt.user_id is None or e.user_id == flt.user_id]
        if flt.table_name:
            items = [e for e in items if e.table_name == flt.table_name]
        return items[offset : offset + limit], len(items)

    def list_for_record(self, *, table_name: str, record_id: int):
        return [e for e in self.entries if e.table_name == table_name and e.record_id == record_id]


class Yard:
    """A wired set of in-memory repositories for one test."""

    def __init__(self):
        self.vessels = InMemoryVessels()
        self.work_orders = InMemoryWorkOrders(self.vessels)
        self.details = InMemoryWorkDetails()
        self.progress = InMemoryProgress(self.details, self.work_orders)
        self.permits = InMemoryPermits()
        self.work_verifications = InMemoryWorkVerifications()
        self.operation_verifications = InMemoryOperationVerifications()
        self.bastps = InMemoryBastps()
        self.services = InMemoryGeneralServices()
        self.materials = InMemoryMaterials()
        self.invoices = InMemoryInvoices(self.details)
        self.logs = InMemoryActivityLogs()
        self.activity = ActivityLogService(self.logs)

    def completed_work_order(self, number: str = "WO-001", *, details: int = 2, vessel: Optional[Vessel] = None):
        """A work order whose details all have a 100 % report."""
        vessel = vessel or self.vessels.add()
        wo = self.work_orders.add(vessel.id, number)
        for n in range(details):
            d = self.details.add(wo.id, f"Job {n + 1}")
            self.progress.add(d.id, 100, date(2025, 2, 1))
        return wo


def web_app(monkeypatch, tmp_path):
    """The real Flask app on testing settings; no route used by the caller may touch MySQL."""
    from src.shipyard_report.shipyard_report.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("AUTO_INIT_DB", "0")
    monkeypatch.setenv("AUTO_SEED_DB", "0")
    monkeypatch.setenv("UPLOAD_FOLDER", str(tmp_path))
    monkeypatch.delitem(sys.modules, "config.testing", raising=False)
    app = create_app()
    app.config["TESTING"] = True
    return app


def sign_in(client, role: Role, user_id: int = 1) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["name"] = f"{role.value.title()} User"
        sess["email"] = f"{role.value.lower()}@yard.test"
        sess["role"] = role.value
