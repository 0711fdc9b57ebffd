from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal, where_sql
from .model import MaterialInput, MaterialItem, MaterialUsage
from .repository import MaterialRepository

_USAGE_SELECT = """
    SELECT
        mc.id, mc.bastp_id, mc.work_details_id, mc.material_id, mc.size, mc.amount, mc.uom, mc.created_at,
        ml.material, ml.specification, ml.category, wd.description AS work_details_description
    FROM material_control mc
    JOIN material_lists ml ON ml.id = mc.material_id
    LEFT JOIN work_details wd ON wd.id = mc.work_details_id
"""


def _to_item(r: dict) -> MaterialItem:
    return MaterialItem(
        id=int(r["id"]),
        material=r["material"],
        specification=r.get("specification"),
        category=r.get("category"),
    )


def _to_usage(r: dict) -> MaterialUsage:
    return MaterialUsage(
        id=int(r["id"]),
        bastp_id=int(r["bastp_id"]),
        work_details_id=int(r["work_details_id"]),
        material_id=int(r["material_id"]),
        size=r.get("size"),
        amount=to_decimal(r["amount"]),
        uom=r["uom"],
        created_at=r.get("created_at"),
        material=r.get("material"),
        specification=r.get("specification"),
        category=r.get("category"),
        work_details_description=r.get("work_details_description"),
    )


class MySQLMaterialRepository(MaterialRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_catalogue(self) -> Sequence[MaterialItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, material, specification, category FROM material_lists
                WHERE deleted_at IS NULL
                ORDER BY category IS NULL, category, material, specification
                """
            )
            return [_to_item(r) for r in fetchall(cur)]

    def get_item(self, material_id: int) -> Optional[MaterialItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, material, specification, category FROM material_lists WHERE id=%s AND deleted_at IS NULL",
                (int(material_id),),
            )
            r = fetchone(cur)
            return _to_item(r) if r else None

    def add_item(self, *, material: str, specification: Optional[str], category: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO material_lists(material, specification, category) VALUES(%s,%s,%s)",
                (material, specification, category),
            )
            return int(cur.lastrowid)

    def list_usage(self, bastp_id: int, *, work_details_id: Optional[int] = None) -> Sequence[MaterialUsage]:
        clauses = ["mc.deleted_at IS NULL", "mc.bastp_id=%s"]
        params: list = [int(bastp_id)]
        if work_details_id is not None:
            clauses.append("mc.work_details_id=%s")
            params.append(int(work_details_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_USAGE_SELECT} WHERE {where_sql(clauses)} ORDER BY mc.created_at DESC, mc.id DESC",
                tuple(params),
            )
            return [_to_usage(r) for r in fetchall(cur)]

    def usage_counts(self, bastp_id: int) -> dict[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT work_details_id, COUNT(*) AS total FROM material_control
                WHERE bastp_id=%s AND deleted_at IS NULL
                GROUP BY work_details_id
                """,
                (int(bastp_id),),
            )
            return {int(r["work_details_id"]): int(r["total"]) for r in fetchall(cur)}

    def get_usage(self, usage_id: int) -> Optional[MaterialUsage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_USAGE_SELECT} WHERE mc.id=%s AND mc.deleted_at IS NULL", (int(usage_id),))
            r = fetchone(cur)
            return _to_usage(r) if r else None

    def insert_usage(
        self, *, bastp_id: int, work_details_id: int, rows: Sequence[MaterialInput], user_id: int
    ) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for row in rows:
                cur.execute(
                    """
                    INSERT INTO material_control(material_id, size, amount, uom, work_details_id, bastp_id, user_id)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (row.material_id, row.size, row.amount, row.uom, int(work_details_id), int(bastp_id), user_id),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update_usage(self, usage_id: int, data: MaterialInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE material_control SET material_id=%s, size=%s, amount=%s, uom=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                (data.material_id, data.size, data.amount, data.uom, int(usage_id)),
            )
            return cur.rowcount > 0

    def soft_delete_usage(self, usage_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE material_control SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(usage_id),),
            )
            return cur.rowcount > 0
