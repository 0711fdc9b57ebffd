from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import PermitToWork
from .repository import PermitRepository

_SELECT = """
    SELECT
        ptw.id, ptw.work_order_id, ptw.storage_path, ptw.original_name, ptw.is_uploaded,
        ptw.user_id, ptw.created_at, ptw.updated_at,
        wo.shipyard_wo_number, v.name AS vessel_name, p.name AS uploader_name
    FROM permit_to_work ptw
    JOIN work_order wo ON wo.id = ptw.work_order_id AND wo.deleted_at IS NULL
    LEFT JOIN vessel v ON v.id = wo.vessel_id
    LEFT JOIN profiles p ON p.id = ptw.user_id
"""


def _to_permit(r: dict) -> PermitToWork:
    return PermitToWork(
        id=int(r["id"]),
        work_order_id=int(r["work_order_id"]),
        storage_path=r["storage_path"],
        original_name=r.get("original_name"),
        is_uploaded=bool(r.get("is_uploaded")),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        shipyard_wo_number=r.get("shipyard_wo_number"),
        vessel_name=r.get("vessel_name"),
        uploader_name=r.get("uploader_name"),
    )


class MySQLPermitRepository(PermitRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, permit_id: int) -> Optional[PermitToWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE ptw.id=%s AND ptw.deleted_at IS NULL", (int(permit_id),))
            row = fetchone(cur)
            return _to_permit(row) if row else None

    def get_for_work_order(self, work_order_id: int) -> Optional[PermitToWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE ptw.work_order_id=%s AND ptw.deleted_at IS NULL ORDER BY ptw.id DESC LIMIT 1",
                (int(work_order_id),),
            )
            row = fetchone(cur)
            return _to_permit(row) if row else None

    def list_all(self, *, search: Optional[str] = None, vessel_ids: Optional[Sequence[int]] = None) -> Sequence[PermitToWork]:
        clauses = ["ptw.deleted_at IS NULL"]
        params: list[object] = []
        if search:
            like = f"%{search}%"
            clauses.append("(wo.shipyard_wo_number LIKE %s OR v.name LIKE %s OR ptw.original_name LIKE %s)")
            params.extend([like, like, like])
        if vessel_ids is not None:
            sql, ids = in_clause("wo.vessel_id", [int(v) for v in vessel_ids])
            clauses.append(sql)
            params.extend(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {where_sql(clauses)} ORDER BY ptw.updated_at DESC, ptw.id DESC",
                tuple(params),
            )
            return [_to_permit(r) for r in fetchall(cur)]

    def insert(self, *, work_order_id: int, storage_path: str, original_name: str, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO permit_to_work(work_order_id, storage_path, original_name, is_uploaded, user_id)
                VALUES(%s,%s,%s,1,%s)
                """,
                (int(work_order_id), storage_path, original_name, int(user_id)),
            )
            return int(cur.lastrowid)

    def replace_file(self, permit_id: int, *, storage_path: str, original_name: str, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE permit_to_work
                SET storage_path=%s, original_name=%s, is_uploaded=1, user_id=%s, updated_at=NOW()
                WHERE id=%s AND deleted_at IS NULL
                """,
                (storage_path, original_name, int(user_id), int(permit_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, permit_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE permit_to_work SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(permit_id),),
            )
            return cur.rowcount > 0
