from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import BastpStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal, where_sql
from .model import Bastp, BastpInput, GeneralService, GeneralServiceType
from .repository import BastpRepository, GeneralServiceRepository

_SELECT = """
    SELECT
        b.id, b.number, b.date, b.delivery_date, b.vessel_id, b.status, b.storage_path,
        b.bastp_upload_date, b.is_invoiced, b.invoiced_date, b.verification_notes,
        b.user_id, b.created_at, v.name AS vessel_name, v.company AS vessel_company
    FROM bastp b
    LEFT JOIN vessel v ON v.id = b.vessel_id
"""


def _to_bastp(r: dict) -> Bastp:
    return Bastp(
        id=int(r["id"]),
        number=r["number"],
        date=r["date"],
        delivery_date=r["delivery_date"],
        vessel_id=int(r["vessel_id"]),
        status=BastpStatus(r["status"]),
        storage_path=r.get("storage_path"),
        bastp_upload_date=r.get("bastp_upload_date"),
        is_invoiced=bool(r.get("is_invoiced")),
        invoiced_date=r.get("invoiced_date"),
        verification_notes=r.get("verification_notes"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        vessel_name=r.get("vessel_name"),
        vessel_company=r.get("vessel_company"),
    )


def _to_service(r: dict) -> GeneralService:
    return GeneralService(
        id=int(r["id"]),
        bastp_id=int(r["bastp_id"]),
        service_type_id=int(r["service_type_id"]),
        total_days=int(r["total_days"]),
        unit_price=to_decimal(r["unit_price"]),
        payment_price=to_decimal(r["payment_price"]),
        remarks=r.get("remarks"),
        service_name=r.get("service_name"),
        service_code=r.get("service_code"),
    )


class MySQLBastpRepository(BastpRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, bastp_id: int) -> Optional[Bastp]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE b.id=%s AND b.deleted_at IS NULL", (int(bastp_id),))
            row = fetchone(cur)
            return _to_bastp(row) if row else None

    def list_all(self, *, status: Optional[BastpStatus] = None, vessel_id: Optional[int] = None) -> Sequence[Bastp]:
        clauses = ["b.deleted_at IS NULL"]
        params: list[object] = []
        if status is not None:
            clauses.append("b.status=%s")
            params.append(status.value)
        if vessel_id is not None:
            clauses.append("b.vessel_id=%s")
            params.append(int(vessel_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where_sql(clauses)} ORDER BY b.date DESC, b.id DESC", tuple(params))
            return [_to_bastp(r) for r in fetchall(cur)]

    def create(self, data: BastpInput, *, work_details_ids: Sequence[int], user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO bastp(number, date, delivery_date, vessel_id, status, is_invoiced, user_id)
                VALUES(%s,%s,%s,%s,%s,0,%s)
                """,
                (data.number, data.date, data.delivery_date, int(data.vessel_id), BastpStatus.DRAFT.value, int(user_id)),
            )
            bastp_id = int(cur.lastrowid)
            for wd_id in work_details_ids:
                cur.execute(
                    "INSERT INTO bastp_work_details(bastp_id, work_details_id) VALUES(%s,%s)",
                    (bastp_id, int(wd_id)),
                )
            return bastp_id

    def work_details_ids(self, bastp_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT work_details_id FROM bastp_work_details WHERE bastp_id=%s ORDER BY work_details_id",
                (int(bastp_id),),
            )
            return [int(r["work_details_id"]) for r in fetchall(cur)]

    def linked_work_details_ids(self) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bwd.work_details_id
                FROM bastp_work_details bwd
                JOIN bastp b ON b.id = bwd.bastp_id AND b.deleted_at IS NULL
                """
            )
            return {int(r["work_details_id"]) for r in fetchall(cur)}

    def set_status(self, bastp_id: int, *, status: BastpStatus, notes: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE bastp SET status=%s, verification_notes=COALESCE(%s, verification_notes)
                WHERE id=%s AND deleted_at IS NULL
                """,
                (status.value, notes, int(bastp_id)),
            )
            return cur.rowcount > 0

    def set_document(self, bastp_id: int, *, storage_path: str, uploaded_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE bastp SET storage_path=%s, bastp_upload_date=%s WHERE id=%s AND deleted_at IS NULL",
                (storage_path, uploaded_at, int(bastp_id)),
            )
            return cur.rowcount > 0

    def set_invoiced(self, bastp_id: int, *, invoiced: bool, invoiced_at: Optional[datetime]) -> bool:
        status = BastpStatus.INVOICED if invoiced else BastpStatus.READY_FOR_INVOICE
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE bastp SET status=%s, is_invoiced=%s, invoiced_date=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                (status.value, 1 if invoiced else 0, invoiced_at, int(bastp_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, bastp_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE bastp SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL", (int(bastp_id),))
            return cur.rowcount > 0


class MySQLGeneralServiceRepository(GeneralServiceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_types(self) -> Sequence[GeneralServiceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, service_name, service_code, display_order FROM general_service_types ORDER BY display_order, id"
            )
            return [
                GeneralServiceType(
                    id=int(r["id"]),
                    service_name=r["service_name"],
                    service_code=r["service_code"],
                    display_order=int(r.get("display_order") or 0),
                )
                for r in fetchall(cur)
            ]

    def get_type(self, service_type_id: int) -> Optional[GeneralServiceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, service_name, service_code, display_order FROM general_service_types WHERE id=%s",
                (int(service_type_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return GeneralServiceType(
                id=int(r["id"]),
                service_name=r["service_name"],
                service_code=r["service_code"],
                display_order=int(r.get("display_order") or 0),
            )

    def list_for_bastp(self, bastp_id: int) -> Sequence[GeneralService]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT gs.id, gs.bastp_id, gs.service_type_id, gs.total_days, gs.unit_price,
                       gs.payment_price, gs.remarks, t.service_name, t.service_code
                FROM general_services gs
                JOIN general_service_types t ON t.id = gs.service_type_id
                WHERE gs.bastp_id=%s
                ORDER BY t.display_order, gs.id
                """,
                (int(bastp_id),),
            )
            return [_to_service(r) for r in fetchall(cur)]

    def get(self, service_id: int) -> Optional[GeneralService]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT gs.id, gs.bastp_id, gs.service_type_id, gs.total_days, gs.unit_price,
                       gs.payment_price, gs.remarks, t.service_name, t.service_code
                FROM general_services gs
                JOIN general_service_types t ON t.id = gs.service_type_id
                WHERE gs.id=%s
                """,
                (int(service_id),),
            )
            r = fetchone(cur)
            return _to_service(r) if r else None

    def save(
        self,
        *,
        bastp_id: int,
        service_type_id: int,
        total_days: int,
        unit_price: Decimal,
        payment_price: Decimal,
        remarks: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM general_services WHERE bastp_id=%s AND service_type_id=%s",
                (int(bastp_id), int(service_type_id)),
            )
            existing = fetchone(cur)
            if existing:
                cur.execute(
                    """
                    UPDATE general_services
                    SET total_days=%s, unit_price=%s, payment_price=%s, remarks=%s
                    WHERE id=%s
                    """,
                    (int(total_days), unit_price, payment_price, remarks, int(existing["id"])),
                )
                return int(existing["id"])
            cur.execute(
                """
                INSERT INTO general_services(bastp_id, service_type_id, total_days, unit_price, payment_price, remarks)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(bastp_id), int(service_type_id), int(total_days), unit_price, payment_price, remarks),
            )
            return int(cur.lastrowid)

    def delete(self, service_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM general_services WHERE id=%s", (int(service_id),))
            return cur.rowcount > 0
