from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import WorkOrder, WorkOrderInput
from .repository import WorkOrderRepository

_SELECT = """
    SELECT
        wo.id, wo.vessel_id, wo.shipyard_wo_number, wo.shipyard_wo_date,
        wo.customer_wo_number, wo.customer_wo_date, wo.work_type, wo.work_location,
        wo.is_additional_wo, wo.wo_document_delivery_date, wo.user_id, wo.created_at,
        v.name AS vessel_name, v.type AS vessel_type, v.company AS vessel_company
    FROM work_order wo
    LEFT JOIN vessel v ON v.id = wo.vessel_id
"""


def _to_work_order(r: dict) -> WorkOrder:
    return WorkOrder(
        id=int(r["id"]),
        vessel_id=int(r["vessel_id"]),
        shipyard_wo_number=r["shipyard_wo_number"],
        shipyard_wo_date=r["shipyard_wo_date"],
        customer_wo_number=r.get("customer_wo_number"),
        customer_wo_date=r.get("customer_wo_date"),
        work_type=r.get("work_type"),
        work_location=r.get("work_location"),
        is_additional_wo=bool(r.get("is_additional_wo")),
        wo_document_delivery_date=r.get("wo_document_delivery_date"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        vessel_name=r.get("vessel_name"),
        vessel_type=r.get("vessel_type"),
        vessel_company=r.get("vessel_company"),
    )


def _params(data: WorkOrderInput) -> tuple:
    return (
        int(data.vessel_id),
        data.shipyard_wo_number,
        data.shipyard_wo_date,
        data.customer_wo_number,
        data.customer_wo_date,
        data.work_type,
        data.work_location,
        1 if data.is_additional_wo else 0,
        data.wo_document_delivery_date,
    )


class MySQLWorkOrderRepository(WorkOrderRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, work_order_id: int) -> Optional[WorkOrder]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE wo.id=%s AND wo.deleted_at IS NULL", (int(work_order_id),))
            row = fetchone(cur)
            return _to_work_order(row) if row else None

    def list_all(
        self,
        *,
        search: Optional[str] = None,
        vessel_id: Optional[int] = None,
        vessel_ids: Optional[Sequence[int]] = None,
    ) -> Sequence[WorkOrder]:
        clauses = ["wo.deleted_at IS NULL"]
        params: list[object] = []
        if search:
            like = f"%{search}%"
            clauses.append(
                "(wo.shipyard_wo_number LIKE %s OR wo.customer_wo_number LIKE %s"
                " OR wo.work_type LIKE %s OR v.name LIKE %s OR v.company LIKE %s)"
            )
            params.extend([like] * 5)
        if vessel_id is not None:
            clauses.append("wo.vessel_id=%s")
            params.append(int(vessel_id))
        if vessel_ids is not None:
            sql, ids = in_clause("wo.vessel_id", [int(v) for v in vessel_ids])
            clauses.append(sql)
            params.extend(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {where_sql(clauses)} ORDER BY wo.created_at DESC, wo.id DESC",
                tuple(params),
            )
            return [_to_work_order(r) for r in fetchall(cur)]

    def list_by_ids(self, work_order_ids: Sequence[int]) -> Sequence[WorkOrder]:
        sql, params = in_clause("wo.id", [int(i) for i in work_order_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {sql} AND wo.deleted_at IS NULL ORDER BY wo.id", tuple(params))
            return [_to_work_order(r) for r in fetchall(cur)]

    def create(self, data: WorkOrderInput, *, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_order(
                    vessel_id, shipyard_wo_number, shipyard_wo_date, customer_wo_number,
                    customer_wo_date, work_type, work_location, is_additional_wo,
                    wo_document_delivery_date, user_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(data) + (int(user_id),),
            )
            return int(cur.lastrowid)

    def update(self, work_order_id: int, data: WorkOrderInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_order
                SET vessel_id=%s, shipyard_wo_number=%s, shipyard_wo_date=%s, customer_wo_number=%s,
                    customer_wo_date=%s, work_type=%s, work_location=%s, is_additional_wo=%s,
                    wo_document_delivery_date=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                _params(data) + (int(work_order_id),),
            )
            return cur.rowcount > 0

    def soft_delete(self, work_order_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_order SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(work_order_id),),
            )
            return cur.rowcount > 0
