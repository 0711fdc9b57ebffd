from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import ProgressFilter, ProgressListRow, WorkProgress
from .repository import WorkProgressRepository

_COLUMNS = """
    wp.id, wp.work_details_id, wp.progress_percentage, wp.report_date, wp.notes,
    wp.storage_path, wp.user_id, wp.created_at, p.name AS reporter_name
"""

_FROM = """
    FROM work_progress wp
    JOIN work_details wd ON wd.id = wp.work_details_id AND wd.deleted_at IS NULL
    JOIN work_order wo ON wo.id = wd.work_order_id AND wo.deleted_at IS NULL
    JOIN vessel v ON v.id = wo.vessel_id
    LEFT JOIN profiles p ON p.id = wp.user_id
"""


def _to_progress(r: dict) -> WorkProgress:
    return WorkProgress(
        id=int(r["id"]),
        work_details_id=int(r["work_details_id"]),
        progress_percentage=int(r["progress_percentage"]),
        report_date=r["report_date"],
        notes=r.get("notes"),
        storage_path=r.get("storage_path"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        reporter_name=r.get("reporter_name"),
    )


def _filter_sql(flt: ProgressFilter) -> tuple[str, list]:
    clauses = ["wp.deleted_at IS NULL"]
    params: list[object] = []
    if flt.date_from is not None:
        clauses.append("wp.report_date >= %s")
        params.append(flt.date_from)
    if flt.date_to is not None:
        clauses.append("wp.report_date < %s")
        params.append(flt.date_to + timedelta(days=1))
    if flt.vessel_id is not None:
        clauses.append("wo.vessel_id=%s")
        params.append(int(flt.vessel_id))
    if flt.vessel_ids is not None:
        sql, ids = in_clause("wo.vessel_id", [int(v) for v in flt.vessel_ids])
        clauses.append(sql)
        params.extend(ids)
    if flt.work_order_id is not None:
        clauses.append("wd.work_order_id=%s")
        params.append(int(flt.work_order_id))
    if flt.work_details_id is not None:
        clauses.append("wp.work_details_id=%s")
        params.append(int(flt.work_details_id))
    return where_sql(clauses), params


class MySQLWorkProgressRepository(WorkProgressRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, progress_id: int) -> Optional[WorkProgress]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_progress wp
                LEFT JOIN profiles p ON p.id = wp.user_id
                WHERE wp.id=%s AND wp.deleted_at IS NULL
                """,
                (int(progress_id),),
            )
            row = fetchone(cur)
            return _to_progress(row) if row else None

    def list_for_details(self, work_details_ids: Sequence[int]) -> Sequence[WorkProgress]:
        sql, params = in_clause("wp.work_details_id", [int(i) for i in work_details_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_progress wp
                LEFT JOIN profiles p ON p.id = wp.user_id
                WHERE {sql} AND wp.deleted_at IS NULL
                ORDER BY wp.report_date DESC, wp.created_at DESC
                """,
                tuple(params),
            )
            return [_to_progress(r) for r in fetchall(cur)]

    def search(
        self, flt: ProgressFilter, *, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[Sequence[ProgressListRow], int]:
        where, params = _filter_sql(flt)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n {_FROM} WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {"n": 0})["n"])

            sql = f"""
                SELECT {_COLUMNS},
                    wd.description AS wd_description, wd.location AS wd_location,
                    wo.id AS wo_id, wo.shipyard_wo_number, v.id AS v_id, v.name AS vessel_name
                {_FROM}
                WHERE {where}
                ORDER BY wp.report_date DESC, wp.created_at DESC
            """
            page_params = list(params)
            if limit is not None:
                sql += " LIMIT %s OFFSET %s"
                page_params.extend([int(limit), int(offset)])
            cur.execute(sql, tuple(page_params))
            rows = [
                ProgressListRow(
                    progress=_to_progress(r),
                    work_details_description=r["wd_description"],
                    work_details_location=r.get("wd_location"),
                    work_order_id=int(r["wo_id"]),
                    shipyard_wo_number=r["shipyard_wo_number"],
                    vessel_id=int(r["v_id"]),
                    vessel_name=r["vessel_name"],
                )
                for r in fetchall(cur)
            ]
            return rows, total

    def insert(
        self,
        *,
        work_details_id: int,
        progress_percentage: int,
        report_date: date,
        notes: Optional[str],
        storage_path: Optional[str],
        user_id: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_progress(work_details_id, progress_percentage, report_date, notes, storage_path, user_id)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(work_details_id), int(progress_percentage), report_date, notes, storage_path, int(user_id)),
            )
            return int(cur.lastrowid)

    def update(
        self,
        progress_id: int,
        *,
        progress_percentage: int,
        report_date: date,
        notes: Optional[str],
        storage_path: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_progress
                SET progress_percentage=%s, report_date=%s, notes=%s, storage_path=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                (int(progress_percentage), report_date, notes, storage_path, int(progress_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, progress_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_progress SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(progress_id),),
            )
            return cur.rowcount > 0
