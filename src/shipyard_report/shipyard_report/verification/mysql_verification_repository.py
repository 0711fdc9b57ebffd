from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import OperationVerification, WorkVerification
from .repository import OperationVerificationRepository, WorkVerificationRepository

_WORK_SELECT = """
    SELECT
        wv.id, wv.work_details_id, wv.work_verification, wv.verification_date,
        wv.verification_notes, wv.user_id, wv.created_at,
        wd.description AS wd_description, wo.id AS wo_id, wo.shipyard_wo_number,
        v.name AS vessel_name, p.name AS verifier_name
    FROM work_verification wv
    JOIN work_details wd ON wd.id = wv.work_details_id
    JOIN work_order wo ON wo.id = wd.work_order_id
    LEFT JOIN vessel v ON v.id = wo.vessel_id
    LEFT JOIN profiles p ON p.id = wv.user_id
"""

_OPERATION_SELECT = """
    SELECT
        ov.id, ov.work_order_id, ov.progress_verification, ov.verification_date,
        ov.user_id, ov.created_at,
        wo.shipyard_wo_number, v.name AS vessel_name, p.name AS verifier_name
    FROM operation_verification ov
    JOIN work_order wo ON wo.id = ov.work_order_id
    LEFT JOIN vessel v ON v.id = wo.vessel_id
    LEFT JOIN profiles p ON p.id = ov.user_id
"""


def _to_work(r: dict) -> WorkVerification:
    return WorkVerification(
        id=int(r["id"]),
        work_details_id=int(r["work_details_id"]),
        work_verification=bool(r["work_verification"]),
        verification_date=r["verification_date"],
        verification_notes=r.get("verification_notes"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        work_details_description=r.get("wd_description"),
        work_order_id=int(r["wo_id"]) if r.get("wo_id") is not None else None,
        shipyard_wo_number=r.get("shipyard_wo_number"),
        vessel_name=r.get("vessel_name"),
        verifier_name=r.get("verifier_name"),
    )


def _to_operation(r: dict) -> OperationVerification:
    return OperationVerification(
        id=int(r["id"]),
        work_order_id=int(r["work_order_id"]),
        progress_verification=bool(r["progress_verification"]),
        verification_date=r["verification_date"],
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        shipyard_wo_number=r.get("shipyard_wo_number"),
        vessel_name=r.get("vessel_name"),
        verifier_name=r.get("verifier_name"),
    )


class MySQLWorkVerificationRepository(WorkVerificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, verification_id: int) -> Optional[WorkVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_WORK_SELECT} WHERE wv.id=%s AND wv.deleted_at IS NULL", (int(verification_id),))
            row = fetchone(cur)
            return _to_work(row) if row else None

    def get_active_for_details(self, work_details_id: int) -> Optional[WorkVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_WORK_SELECT} WHERE wv.work_details_id=%s AND wv.deleted_at IS NULL ORDER BY wv.id DESC LIMIT 1",
                (int(work_details_id),),
            )
            row = fetchone(cur)
            return _to_work(row) if row else None

    def list_active(self) -> Sequence[WorkVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_WORK_SELECT}
                WHERE wv.deleted_at IS NULL AND wd.deleted_at IS NULL AND wo.deleted_at IS NULL
                ORDER BY wv.verification_date DESC, wv.id DESC
                """
            )
            return [_to_work(r) for r in fetchall(cur)]

    def insert(self, *, work_details_id: int, verification_date: date, notes: Optional[str], user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_verification(work_details_id, work_verification, verification_date, verification_notes, user_id)
                VALUES(%s,1,%s,%s,%s)
                """,
                (int(work_details_id), verification_date, notes, int(user_id)),
            )
            return int(cur.lastrowid)

    def soft_delete(self, verification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_verification SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(verification_id),),
            )
            return cur.rowcount > 0


class MySQLOperationVerificationRepository(OperationVerificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, verification_id: int) -> Optional[OperationVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_OPERATION_SELECT} WHERE ov.id=%s AND ov.deleted_at IS NULL", (int(verification_id),))
            row = fetchone(cur)
            return _to_operation(row) if row else None

    def get_active_for_work_order(self, work_order_id: int) -> Optional[OperationVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_OPERATION_SELECT} WHERE ov.work_order_id=%s AND ov.deleted_at IS NULL ORDER BY ov.id DESC LIMIT 1",
                (int(work_order_id),),
            )
            row = fetchone(cur)
            return _to_operation(row) if row else None

    def list_active(self) -> Sequence[OperationVerification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_OPERATION_SELECT}
                WHERE ov.deleted_at IS NULL AND wo.deleted_at IS NULL
                ORDER BY ov.verification_date DESC, ov.id DESC
                """
            )
            return [_to_operation(r) for r in fetchall(cur)]

    def insert(self, *, work_order_id: int, verification_date: date, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO operation_verification(work_order_id, progress_verification, verification_date, user_id)
                VALUES(%s,1,%s,%s)
                """,
                (int(work_order_id), verification_date, int(user_id)),
            )
            return int(cur.lastrowid)

    def soft_delete(self, verification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE operation_verification SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(verification_id),),
            )
            return cur.rowcount > 0
