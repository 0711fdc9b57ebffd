from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional, Sequence

from ..core.enums import ActivityAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json, where_sql
from .model import ActivityLog, ActivityLogFilter
from .repository import ActivityLogRepository

_COLUMNS = """
    id, user_id, user_name, user_email, action, table_name, record_id,
    old_data, new_data, changes, ip_address, user_agent, description, created_at
"""


def _to_log(r: dict) -> ActivityLog:
    return ActivityLog(
        id=int(r["id"]),
        user_id=int(r["user_id"]),
        user_name=r["user_name"],
        user_email=r["user_email"],
        action=ActivityAction(r["action"]),
        table_name=r["table_name"],
        record_id=int(r["record_id"]),
        old_data=from_json(r.get("old_data")),
        new_data=from_json(r.get("new_data")),
        changes=from_json(r.get("changes")),
        ip_address=r.get("ip_address"),
        user_agent=r.get("user_agent"),
        description=r.get("description"),
        created_at=r["created_at"],
    )


class MySQLActivityLogRepository(ActivityLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(
        self,
        *,
        user_id: int,
        user_name: str,
        user_email: str,
        action: ActivityAction,
        table_name: str,
        record_id: int,
        old_data: Optional[dict[str, Any]],
        new_data: Optional[dict[str, Any]],
        changes: Optional[dict[str, Any]],
        ip_address: Optional[str],
        user_agent: Optional[str],
        description: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activity_logs(
                    user_id, user_name, user_email, action, table_name, record_id,
                    old_data, new_data, changes, ip_address, user_agent, description
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    user_name,
                    user_email,
                    action.value,
                    table_name,
                    int(record_id),
                    to_json(old_data),
                    to_json(new_data),
                    to_json(changes),
                    ip_address,
                    user_agent,
                    description,
                ),
            )
            return int(cur.lastrowid)

    def search(self, flt: ActivityLogFilter, *, limit: int, offset: int) -> tuple[Sequence[ActivityLog], int]:
        clauses: list[str] = []
        params: list[object] = []
        if flt.user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(flt.user_id))
        if flt.table_name:
            clauses.append("table_name=%s")
            params.append(flt.table_name)
        if flt.action is not None:
            clauses.append("action=%s")
            params.append(flt.action.value)
        if flt.start_date is not None:
            clauses.append("created_at >= %s")
            params.append(flt.start_date)
        if flt.end_date is not None:
            # end date is inclusive
            clauses.append("created_at < %s")
            params.append(flt.end_date + timedelta(days=1))
        where = where_sql(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM activity_logs WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {"n": 0})["n"])
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM activity_logs
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_log(r) for r in fetchall(cur)], total

    def list_for_record(self, *, table_name: str, record_id: int) -> Sequence[ActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM activity_logs
                WHERE table_name=%s AND record_id=%s
                ORDER BY created_at DESC, id DESC
                """,
                (table_name, int(record_id)),
            )
            return [_to_log(r) for r in fetchall(cur)]
