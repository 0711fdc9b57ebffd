from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, date_arg, login_required, page_arg, permission_required
from ..core.enums import ActivityAction, Permission
from ..core.exceptions import DomainError
from ..container import Container
from .model import ActivityLogFilter

logger = logging.getLogger(__name__)

TRACKED_TABLES = (
    "vessel",
    "work_order",
    "work_details",
    "work_progress",
    "permit_to_work",
    "work_verification",
    "operation_verification",
    "bastp",
    "general_services",
    "invoice_details",
)


def register(app: Flask, container: Container) -> None:
    @app.route("/activity-logs", endpoint="activity_logs")
    @login_required
    def activity_logs():
        action = request.args.get("action") or None
        flt = ActivityLogFilter(
            user_id=request.args.get("user_id", type=int),
            table_name=request.args.get("table_name") or None,
            action=ActivityAction(action) if action in {a.value for a in ActivityAction} else None,
            start_date=date_arg("start_date"),
            end_date=date_arg("end_date"),
        )
        page = container.activity_service.list_logs(current_actor(), flt, page=page_arg())
        return render_template(
            "activity_log/index.html",
            page=page,
            flt=flt,
            tables=TRACKED_TABLES,
            actions=list(ActivityAction),
            active_page="activity_logs",
        )

    @app.route("/activity-logs/<table_name>/<int:record_id>", endpoint="record_history")
    @permission_required(Permission.VIEW_ALL_REPORTS)
    def record_history(table_name: str, record_id: int):
        try:
            logs = container.activity_service.history(current_actor(), table_name=table_name, record_id=record_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("activity_logs"))
        return render_template(
            "activity_log/history.html",
            logs=logs,
            table_name=table_name,
            record_id=record_id,
            active_page="activity_logs",
        )
