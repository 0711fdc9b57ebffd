from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Profile
from .repository import ProfileRepository

_COLUMNS = "id, email, name, company, role, password_hash, is_active, created_at"


def _to_profile(row: dict) -> Profile:
    return Profile(
        id=int(row["id"]),
        email=row["email"],
        name=row["name"],
        company=row.get("company"),
        role=Role(row["role"]),
        password_hash=row["password_hash"],
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, profile_id: int) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM profiles WHERE id=%s AND deleted_at IS NULL",
                (int(profile_id),),
            )
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def get_by_email(self, email: str) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM profiles WHERE LOWER(email)=LOWER(%s) AND deleted_at IS NULL",
                (email,),
            )
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def create(self, *, email: str, name: str, company: Optional[str], role: Role, password_hash: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO profiles(email, name, company, role, password_hash)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (email, name, company, role.value, password_hash),
            )
            return int(cur.lastrowid)

    def update_role(self, profile_id: int, *, role: Role) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE profiles SET role=%s WHERE id=%s AND deleted_at IS NULL",
                (role.value, int(profile_id)),
            )
            return cur.rowcount > 0

    def set_active(self, profile_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE profiles SET is_active=%s WHERE id=%s AND deleted_at IS NULL",
                (1 if is_active else 0, int(profile_id)),
            )
            return cur.rowcount > 0

    def list_all(self) -> Sequence[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM profiles WHERE deleted_at IS NULL ORDER BY name")
            return [_to_profile(r) for r in fetchall(cur)]
