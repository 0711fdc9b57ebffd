from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_decimal
from .model import WorkDetails, WorkDetailsInput
from .repository import WorkDetailsRepository

_COLUMNS = """
    id, work_order_id, description, location, work_location, work_type, quantity, uom,
    is_additional_wo_details, planned_start_date, target_close_date, period_close_target,
    actual_start_date, actual_close_date, pic, notes, user_id, created_at
"""


def _to_details(r: dict) -> WorkDetails:
    return WorkDetails(
        id=int(r["id"]),
        work_order_id=int(r["work_order_id"]),
        description=r["description"],
        location=r["location"],
        work_location=r["work_location"],
        work_type=r["work_type"],
        quantity=to_decimal(r["quantity"]),
        uom=r["uom"],
        is_additional_wo_details=bool(r.get("is_additional_wo_details")),
        planned_start_date=r["planned_start_date"],
        target_close_date=r["target_close_date"],
        period_close_target=r["period_close_target"],
        actual_start_date=r.get("actual_start_date"),
        actual_close_date=r.get("actual_close_date"),
        pic=r.get("pic"),
        notes=r.get("notes"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
    )


def _params(data: WorkDetailsInput) -> tuple:
    return (
        data.description,
        data.location,
        data.work_location,
        data.work_type,
        data.quantity,
        data.uom,
        1 if data.is_additional_wo_details else 0,
        data.planned_start_date,
        data.target_close_date,
        data.period_close_target,
        data.actual_start_date,
        data.actual_close_date,
        data.pic,
        data.notes,
    )


class MySQLWorkDetailsRepository(WorkDetailsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, work_details_id: int) -> Optional[WorkDetails]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_details WHERE id=%s AND deleted_at IS NULL",
                (int(work_details_id),),
            )
            row = fetchone(cur)
            return _to_details(row) if row else None

    def list_for_work_orders(self, work_order_ids: Sequence[int]) -> Sequence[WorkDetails]:
        sql, params = in_clause("work_order_id", [int(i) for i in work_order_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_details WHERE {sql} AND deleted_at IS NULL ORDER BY work_order_id, id",
                tuple(params),
            )
            return [_to_details(r) for r in fetchall(cur)]

    def list_by_ids(self, work_details_ids: Sequence[int]) -> Sequence[WorkDetails]:
        sql, params = in_clause("id", [int(i) for i in work_details_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_details WHERE {sql} AND deleted_at IS NULL ORDER BY id",
                tuple(params),
            )
            return [_to_details(r) for r in fetchall(cur)]

    def insert_many(self, work_order_id: int, rows: Sequence[WorkDetailsInput], *, user_id: int) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for data in rows:
                cur.execute(
                    """
                    INSERT INTO work_details(
                        description, location, work_location, work_type, quantity, uom,
                        is_additional_wo_details, planned_start_date, target_close_date,
                        period_close_target, actual_start_date, actual_close_date, pic, notes,
                        work_order_id, user_id
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    _params(data) + (int(work_order_id), int(user_id)),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update(self, work_details_id: int, data: WorkDetailsInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_details
                SET description=%s, location=%s, work_location=%s, work_type=%s, quantity=%s, uom=%s,
                    is_additional_wo_details=%s, planned_start_date=%s, target_close_date=%s,
                    period_close_target=%s, actual_start_date=%s, actual_close_date=%s, pic=%s, notes=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                _params(data) + (int(work_details_id),),
            )
            return cur.rowcount > 0

    def soft_delete(self, work_details_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_details SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(work_details_id),),
            )
            return cur.rowcount > 0
