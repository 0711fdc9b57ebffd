from __future__ import annotations

from typing import Iterable

from .enums import Permission, Role

P = Permission

_OPERATIONS_PERMISSIONS = frozenset(
    {
        P.MANAGE_VESSELS,
        P.VIEW_VESSELS,
        P.MANAGE_WORK_ORDERS,
        P.VIEW_WORK_ORDERS,
        P.MANAGE_WORK_DETAILS,
        P.VIEW_WORK_DETAILS,
        P.MANAGE_WORK_PROGRESS,
        P.VIEW_WORK_PROGRESS,
        P.UPLOAD_EVIDENCE,
        P.VERIFY_WORK,
        P.VIEW_ALL_REPORTS,
        P.EXPORT_DATA,
        P.VIEW_INVOICES,
    }
)

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.MASTER: frozenset(Permission),
    Role.ADMIN: _OPERATIONS_PERMISSIONS | {P.MANAGE_USERS, P.SYSTEM_SETTINGS},
    Role.PPIC: _OPERATIONS_PERMISSIONS,
    Role.PRODUCTION: _OPERATIONS_PERMISSIONS,
    Role.OPERATION: _OPERATIONS_PERMISSIONS,
    Role.FINANCE: frozenset(
        {
            P.VIEW_VESSELS,
            P.VIEW_WORK_ORDERS,
            P.VIEW_WORK_DETAILS,
            P.VIEW_WORK_PROGRESS,
            P.VIEW_ALL_REPORTS,
            P.EXPORT_DATA,
            P.VIEW_INVOICES,
            P.CREATE_INVOICES,
            P.EDIT_INVOICES,
            P.DELETE_INVOICES,
        }
    ),
}


def has_permission(role: Role | str | None, permission: Permission) -> bool:
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def has_any_permission(role: Role | str | None, permissions: Iterable[Permission]) -> bool:
    return any(has_permission(role, p) for p in permissions)
