from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import Vessel, VesselInput
from .repository import VesselRepository

_COLUMNS = "id, name, type, company, imo_number, flag, built_year, created_at"


def _to_vessel(r: dict) -> Vessel:
    return Vessel(
        id=int(r["id"]),
        name=r["name"],
        type=r["type"],
        company=r["company"],
        imo_number=r.get("imo_number"),
        flag=r.get("flag"),
        built_year=int(r["built_year"]) if r.get("built_year") is not None else None,
        created_at=r.get("created_at"),
    )


class MySQLVesselRepository(VesselRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, vessel_id: int) -> Optional[Vessel]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM vessel WHERE id=%s AND deleted_at IS NULL", (int(vessel_id),))
            row = fetchone(cur)
            return _to_vessel(row) if row else None

    def list_all(self, *, search: Optional[str] = None, vessel_ids: Optional[Sequence[int]] = None) -> Sequence[Vessel]:
        clauses = ["deleted_at IS NULL"]
        params: list[object] = []
        if search:
            like = f"%{search}%"
            clauses.append("(name LIKE %s OR type LIKE %s OR company LIKE %s)")
            params.extend([like, like, like])
        if vessel_ids is not None:
            sql, ids = in_clause("id", [int(v) for v in vessel_ids])
            clauses.append(sql)
            params.extend(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM vessel WHERE {where_sql(clauses)} ORDER BY name", tuple(params))
            return [_to_vessel(r) for r in fetchall(cur)]

    def find_by_name_and_company(self, *, name: str, company: str) -> Optional[Vessel]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM vessel
                WHERE LOWER(name)=LOWER(%s) AND LOWER(company)=LOWER(%s) AND deleted_at IS NULL
                LIMIT 1
                """,
                (name, company),
            )
            row = fetchone(cur)
            return _to_vessel(row) if row else None

    def create(self, data: VesselInput) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO vessel(name, type, company, imo_number, flag, built_year)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (data.name, data.type, data.company, data.imo_number, data.flag, data.built_year),
            )
            return int(cur.lastrowid)

    def update(self, vessel_id: int, data: VesselInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE vessel
                SET name=%s, type=%s, company=%s, imo_number=%s, flag=%s, built_year=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                (data.name, data.type, data.company, data.imo_number, data.flag, data.built_year, int(vessel_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, vessel_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE vessel SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(vessel_id),),
            )
            return cur.rowcount > 0
