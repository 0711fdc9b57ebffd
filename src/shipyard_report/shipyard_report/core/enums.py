from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role stored on the profile, used for permission checks."""

    MASTER = "MASTER"
    ADMIN = "ADMIN"
    PPIC = "PPIC"
    PRODUCTION = "PRODUCTION"
    OPERATION = "OPERATION"
    FINANCE = "FINANCE"


class Permission(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_VESSELS = "manage_vessels"
    VIEW_VESSELS = "view_vessels"
    MANAGE_WORK_ORDERS = "manage_work_orders"
    VIEW_WORK_ORDERS = "view_work_orders"
    MANAGE_WORK_DETAILS = "manage_work_details"
    VIEW_WORK_DETAILS = "view_work_details"
    MANAGE_WORK_PROGRESS = "manage_work_progress"
    VIEW_WORK_PROGRESS = "view_work_progress"
    UPLOAD_EVIDENCE = "upload_evidence"
    VERIFY_WORK = "verify_work"
    VIEW_ALL_REPORTS = "view_all_reports"
    EXPORT_DATA = "export_data"
    VIEW_INVOICES = "view_invoices"
    CREATE_INVOICES = "create_invoices"
    EDIT_INVOICES = "edit_invoices"
    DELETE_INVOICES = "delete_invoices"
    SYSTEM_SETTINGS = "system_settings"


class BastpStatus(str, Enum):
    """Lifecycle of a completion certificate (BASTP)."""

    DRAFT = "DRAFT"
    VERIFIED = "VERIFIED"
    READY_FOR_INVOICE = "READY_FOR_INVOICE"
    INVOICED = "INVOICED"


class ActivityAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AlertPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
