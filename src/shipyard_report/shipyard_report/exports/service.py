"""Spreadsheet export of the main entities and CSV import of the core records."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional, Sequence

import pandas as pd

from ..activity_log.service import ActivityLogService
from ..common.datetime_utils import today_local
from ..common.validators import optional_text, require_date, require_positive_id
from ..core.enums import ActivityAction, Permission
from ..core.permissions import has_permission
from ..core.exceptions import ValidationError
from ..invoices.repository import InvoiceRepository
from ..permits.repository import PermitRepository
from ..progress.calculator import load_completion
from ..progress.model import ProgressFilter
from ..progress.repository import WorkProgressRepository
from ..progress.service import parse_percentage
from ..users.model import Actor
from ..users.service import require_permission
from ..vessels.model import VesselInput
from ..vessels.repository import VesselRepository
from ..work_details.repository import WorkDetailsRepository
from ..work_details.service import validate_work_details_row
from ..work_orders.model import WorkOrderInput
from ..work_orders.repository import WorkOrderRepository
from ..work_orders.service import parse_work_order_input
from .model import ExportFile, ImportResult, ProgressImport, WorkDetailsImport

logger = logging.getLogger(__name__)

ENTITIES = ("vessels", "work_orders", "work_details", "work_progress", "invoices", "permits")
FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
IMPORT_COLUMNS = {
    "vessels": ("name", "type", "company"),
    "work_orders": ("vessel_id", "shipyard_wo_number", "shipyard_wo_date"),
    "work_details": (
        "work_order_id",
        "description",
        "location",
        "work_location",
        "work_type",
        "quantity",
        "uom",
        "planned_start_date",
        "target_close_date",
        "period_close_target",
    ),
    "work_progress": ("work_details_id", "progress_percentage", "report_date"),
}


@dataclass(frozen=True)
class _Importer:
    permission: Permission
    table_name: str
    parse: Callable[[dict], Any]
    get: Callable[[int], Any]
    find: Callable[[Any], Any]
    create: Callable[[Any, Actor], int]
    update: Callable[[Any, Any], bool]
    label: Callable[[Any], str]
    audit: Callable[[Any], Any] = lambda data: data


class ExportService:
    def __init__(
        self,
        vessels: VesselRepository,
        work_orders: WorkOrderRepository,
        details: WorkDetailsRepository,
        progress: WorkProgressRepository,
        invoices: InvoiceRepository,
        permits: PermitRepository,
        activity: ActivityLogService,
        *,
        today: Callable[[], date] = today_local,
    ):
        self._vessels = vessels
        self._work_orders = work_orders
        self._details = details
        self._progress = progress
        self._invoices = invoices
        self._permits = permits
        self._activity = activity
        self._today = today

    # -- export ------------------------------------------------------------

    def _vessel_rows(self, vessel_ids):
        return [
            {
                "id": v.id,
                "name": v.name,
                "type": v.type,
                "company": v.company,
                "imo_number": v.imo_number,
                "flag": v.flag,
                "built_year": v.built_year,
            }
            for v in self._vessels.list_all(vessel_ids=vessel_ids)
        ]

    def _work_order_rows(self, vessel_ids):
        work_orders = self._work_orders.list_all(vessel_ids=vessel_ids)
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        return [
            {
                "id": wo.id,
                "vessel": wo.vessel_name,
                "company": wo.vessel_company,
                "shipyard_wo_number": wo.shipyard_wo_number,
                "shipyard_wo_date": wo.shipyard_wo_date,
                "customer_wo_number": wo.customer_wo_number,
                "customer_wo_date": wo.customer_wo_date,
                "work_type": wo.work_type,
                "work_location": wo.work_location,
                "is_additional_wo": wo.is_additional_wo,
                "wo_document_delivery_date": wo.wo_document_delivery_date,
                "overall_progress": index.work_order_progress(wo.id),
            }
            for wo in work_orders
        ]

    def _work_details_rows(self, vessel_ids):
        work_orders = self._work_orders.list_all(vessel_ids=vessel_ids)
        index = load_completion(self._details, self._progress, [wo.id for wo in work_orders])
        rows = []
        for wo in work_orders:
            for d in index.details_of(wo.id):
                rows.append(
                    {
                        "id": d.id,
                        "vessel": wo.vessel_name,
                        "shipyard_wo_number": wo.shipyard_wo_number,
                        "description": d.description,
                        "location": d.location,
                        "work_location": d.work_location,
                        "work_type": d.work_type,
                        "quantity": float(d.quantity),
                        "uom": d.uom,
                        "planned_start_date": d.planned_start_date,
                        "target_close_date": d.target_close_date,
                        "period_close_target": d.period_close_target,
                        "actual_start_date": d.actual_start_date,
                        "actual_close_date": d.actual_close_date,
                        "pic": d.pic,
                        "current_progress": index.detail_progress(d.id),
                    }
                )
        return rows

    def _progress_rows(self, vessel_ids):
        rows, _ = self._progress.search(ProgressFilter(vessel_ids=vessel_ids))
        return [
            {
                "id": r.progress.id,
                "vessel": r.vessel_name,
                "shipyard_wo_number": r.shipyard_wo_number,
                "work_details": r.work_details_description,
                "progress_percentage": r.progress.progress_percentage,
                "report_date": r.progress.report_date,
                "notes": r.progress.notes,
                "has_evidence": bool(r.progress.storage_path),
                "reported_by": r.progress.reporter_name,
            }
            for r in rows
        ]

    def _invoice_rows(self, vessel_ids):
        invoices, _ = self._invoices.search(vessel_ids=vessel_ids)
        return [
            {
                "id": inv.id,
                "invoice_number": inv.invoice_number,
                "faktur_number": inv.faktur_number,
                "vessel": inv.vessel_name,
                "company": inv.vessel_company,
                "shipyard_wo_number": inv.shipyard_wo_number,
                "customer_wo_number": inv.customer_wo_number,
                "due_date": inv.due_date,
                "delivery_date": inv.delivery_date,
                "collection_date": inv.collection_date,
                "receiver_name": inv.receiver_name,
                "payment_price": float(inv.payment_price) if inv.payment_price is not None else None,
                "payment_status": "PAID" if inv.payment_status else "UNPAID",
                "payment_date": inv.payment_date,
                "remarks": inv.remarks,
            }
            for inv in invoices
        ]

    def _permit_rows(self, vessel_ids):
        return [
            {
                "id": p.id,
                "vessel": p.vessel_name,
                "shipyard_wo_number": p.shipyard_wo_number,
                "original_name": p.original_name,
                "is_uploaded": p.is_uploaded,
                "uploaded_by": p.uploader_name,
                "updated_at": p.updated_at,
            }
            for p in self._permits.list_all(vessel_ids=vessel_ids)
        ]

    def rows_for(self, entity: str, vessel_ids: Optional[Sequence[int]] = None) -> list[dict[str, Any]]:
        builders = {
            "vessels": self._vessel_rows,
            "work_orders": self._work_order_rows,
            "work_details": self._work_details_rows,
            "work_progress": self._progress_rows,
            "invoices": self._invoice_rows,
            "permits": self._permit_rows,
        }
        if entity not in builders:
            raise ValidationError("Unknown export type")
        return builders[entity](list(vessel_ids) if vessel_ids else None)

    def export(
        self,
        actor: Actor,
        *,
        entity: str,
        fmt: str = "csv",
        vessel_ids: Optional[Sequence[int]] = None,
    ) -> ExportFile:
        require_permission(actor, Permission.EXPORT_DATA)
        if fmt not in FORMATS:
            raise ValidationError("Unknown export format")
        rows = self.rows_for(entity, vessel_ids)
        if not rows:
            raise ValidationError("No data to export")

        df = pd.DataFrame(rows)
        if fmt == "csv":
            data = df.to_csv(index=False).encode("utf-8")
        else:
            output = io.BytesIO()
            with pd.ExcelWriter(output, engine="openpyxl") as writer:
                df.to_excel(writer, index=False, sheet_name=entity[:31])
            data = output.getvalue()

        filename = f"{entity}_{self._today().isoformat()}.{fmt}"
        logger.info("Exported %d %s rows as %s for %s", len(rows), entity, fmt, actor.user_id)
        return ExportFile(filename=filename, mimetype=FORMATS[fmt], data=data)

    # -- import ------------------------------------------------------------

    def _importer(self, entity: str) -> _Importer:
        importers = {
            "vessels": _Importer(
                permission=Permission.MANAGE_VESSELS,
                table_name="vessel",
                parse=self._parse_vessel,
                get=self._vessels.get,
                find=lambda d: self._vessels.find_by_name_and_company(name=d.name, company=d.company),
                create=lambda d, actor: self._vessels.create(d),
                update=lambda old, d: self._vessels.update(old.id, d),
                label=lambda d: f"vessel {d.name} ({d.company})",
            ),
            "work_orders": _Importer(
                permission=Permission.MANAGE_WORK_ORDERS,
                table_name="work_order",
                parse=self._parse_work_order,
                get=self._work_orders.get,
                find=self._find_work_order,
                create=lambda d, actor: self._work_orders.create(d, user_id=actor.user_id),
                update=lambda old, d: self._work_orders.update(old.id, d),
                label=lambda d: f"work order {d.shipyard_wo_number}",
            ),
            "work_details": _Importer(
                permission=Permission.MANAGE_WORK_DETAILS,
                table_name="work_details",
                parse=self._parse_work_details,
                get=self._details.get,
                find=self._find_work_details,
                create=lambda d, actor: self._details.insert_many(d.work_order_id, [d.details], user_id=actor.user_id)[0],
                update=self._update_work_details,
                label=lambda d: f"work details {d.details.description}",
                audit=lambda d: d.details,
            ),
            "work_progress": _Importer(
                permission=Permission.MANAGE_WORK_PROGRESS,
                table_name="work_progress",
                parse=self._parse_progress,
                get=self._progress.get,
                find=self._find_progress,
                create=lambda d, actor: self._progress.insert(
                    work_details_id=d.work_details_id,
                    progress_percentage=d.progress_percentage,
                    report_date=d.report_date,
                    notes=d.notes,
                    storage_path=None,
                    user_id=actor.user_id,
                ),
                update=self._update_progress,
                label=lambda d: f"progress of work details {d.work_details_id} on {d.report_date.isoformat()}",
            ),
        }
        return importers[entity]

    def importable_entities(self, actor: Actor) -> list[str]:
        return [e for e in IMPORT_COLUMNS if has_permission(actor.role, self._importer(e).permission)]

    def _parse_vessel(self, values: dict[str, str]) -> VesselInput:
        built_year = None
        if values.get("built_year"):
            try:
                built_year = int(float(values["built_year"]))
            except (ValueError, OverflowError):
                raise ValidationError("built_year must be a number")
        return VesselInput(
            name=values["name"],
            type=values["type"],
            company=values["company"],
            imo_number=values.get("imo_number") or None,
            flag=values.get("flag") or None,
            built_year=built_year,
        )

    def _parse_work_order(self, values: dict[str, str]) -> WorkOrderInput:
        data = parse_work_order_input(values)
        if not self._vessels.get(data.vessel_id):
            raise ValidationError(f"vessel_id {data.vessel_id} does not exist")
        return data

    def _find_work_order(self, data: WorkOrderInput):
        number = data.shipyard_wo_number.lower()
        return next(
            (wo for wo in self._work_orders.list_all(vessel_id=data.vessel_id) if wo.shipyard_wo_number.lower() == number),
            None,
        )

    def _parse_work_details(self, values: dict[str, str]) -> WorkDetailsImport:
        work_order_id = require_positive_id(values.get("work_order_id"), "work_order_id")
        if not self._work_orders.get(work_order_id):
            raise ValidationError(f"work_order_id {work_order_id} does not exist")
        data, errors = validate_work_details_row(values)
        if errors:
            raise ValidationError("; ".join(errors))
        return WorkDetailsImport(work_order_id=work_order_id, details=data)

    def _find_work_details(self, data: WorkDetailsImport):
        description = data.details.description.lower()
        return next(
            (d for d in self._details.list_for_work_orders([data.work_order_id]) if d.description.lower() == description),
            None,
        )

    def _update_work_details(self, old, data: WorkDetailsImport) -> bool:
        if old.work_order_id != data.work_order_id:
            raise ValidationError(f"id {old.id} belongs to work order {old.work_order_id}")
        return self._details.update(old.id, data.details)

    def _parse_progress(self, values: dict[str, str]) -> ProgressImport:
        work_details_id = require_positive_id(values.get("work_details_id"), "work_details_id")
        if not self._details.get(work_details_id):
            raise ValidationError(f"work_details_id {work_details_id} does not exist")
        return ProgressImport(
            work_details_id=work_details_id,
            progress_percentage=parse_percentage(values.get("progress_percentage")),
            report_date=require_date(values.get("report_date"), "report_date"),
            notes=optional_text(values.get("notes")),
        )

    def _find_progress(self, data: ProgressImport):
        return next(
            (p for p in self._progress.list_for_details([data.work_details_id]) if p.report_date == data.report_date),
            None,
        )

    def _update_progress(self, old, data: ProgressImport) -> bool:
        if old.work_details_id != data.work_details_id:
            raise ValidationError(f"id {old.id} belongs to work details {old.work_details_id}")
        return self._progress.update(
            old.id,
            progress_percentage=data.progress_percentage,
            report_date=data.report_date,
            notes=data.notes,
            storage_path=old.storage_path,
        )

    @staticmethod
    def _read_rows(content: bytes, required: Sequence[str]) -> list[tuple[int, dict[str, str]]]:
        try:
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
        except (ValueError, pd.errors.ParserError) as e:
            raise ValidationError(f"Could not read CSV file: {e}")

        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise ValidationError(f"Missing required columns: {', '.join(missing)}")
        # row 1 is the header
        return [
            (number, {k: str(v).strip() for k, v in record.items()})
            for number, record in enumerate(df.to_dict(orient="records"), start=2)
        ]

    def _existing(self, importer: _Importer, values: dict[str, str], data: Any):
        raw_id = values.get("id", "")
        if raw_id.isdigit():
            found = importer.get(int(raw_id))
            if found:
                return found
        return importer.find(data)

    def import_data(
        self,
        actor: Actor,
        entity: str,
        content: bytes,
        *,
        validate_only: bool = False,
        skip_duplicates: bool = True,
        overwrite: bool = False,
    ) -> ImportResult:
        """Import CSV rows of one entity.

        A row matches an existing record by its ``id`` column or by the entity's
        natural key. Matches are updated when ``overwrite`` is set, otherwise
        skipped or reported depending on ``skip_duplicates``.
        """
        if entity not in IMPORT_COLUMNS:
            raise ValidationError("Unknown import type")
        importer = self._importer(entity)
        require_permission(actor, importer.permission)
        if not content:
            raise ValidationError("No file provided")

        required = IMPORT_COLUMNS[entity]
        result = ImportResult()
        candidates: list[tuple[int, dict[str, str], Any]] = []
        for number, values in self._read_rows(content, required):
            empty = [c for c in required if not values.get(c)]
            if empty:
                result.errors.append(f"Row {number}: missing {', '.join(empty)}")
                continue
            try:
                candidates.append((number, values, importer.parse(values)))
            except ValidationError as e:
                result.errors.append(f"Row {number}: {e}")

        if validate_only:
            result.success = not result.errors
            result.message = f"Validation completed. {len(candidates)} valid rows, {len(result.errors)} errors."
            return result

        for number, values, data in candidates:
            label = importer.label(data)
            try:
                existing = self._existing(importer, values, data)
                if existing is None:
                    record_id = importer.create(data, actor)
                    result.imported_count += 1
                    self._activity.record(
                        actor,
                        action=ActivityAction.CREATE,
                        table_name=importer.table_name,
                        record_id=record_id,
                        new=importer.audit(data),
                        description=f"Imported {label}",
                    )
                elif overwrite:
                    if not importer.update(existing, data):
                        raise ValidationError(f"{label} could not be updated")
                    result.updated_count += 1
                    self._activity.record(
                        actor,
                        action=ActivityAction.UPDATE,
                        table_name=importer.table_name,
                        record_id=existing.id,
                        old=existing,
                        new=importer.audit(data),
                        description=f"Overwrote {label} from import",
                    )
                elif skip_duplicates:
                    result.skipped_count += 1
                else:
                    result.errors.append(f"Row {number}: {label} already exists")
            except ValidationError as e:
                result.errors.append(f"Row {number}: {e}")

        written = result.imported_count + result.updated_count
        result.success = not result.errors or written > 0
        result.message = (
            f"Import completed. {result.imported_count} records imported, "
            f"{result.updated_count} updated, {result.skipped_count} skipped."
        )
        logger.info(
            "%s import by %s: %d imported, %d updated, %d skipped, %d errors",
            entity,
            actor.user_id,
            result.imported_count,
            result.updated_count,
            result.skipped_count,
            len(result.errors),
        )
        return result
