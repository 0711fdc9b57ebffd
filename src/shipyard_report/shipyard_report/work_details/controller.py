from __future__ import annotations

import logging
from itertools import zip_longest

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)

ROW_FIELDS = (
    "description",
    "location",
    "work_location",
    "work_type",
    "quantity",
    "uom",
    "planned_start_date",
    "target_close_date",
    "period_close_target",
    "actual_start_date",
    "actual_close_date",
    "pic",
    "notes",
    "is_additional_wo_details",
)


def rows_from_form(form) -> list[dict[str, str]]:
    """Turn repeated `field[]` inputs into one dict per row; blank rows are dropped."""
    columns = [form.getlist(f"{name}[]") for name in ROW_FIELDS]
    rows = []
    for values in zip_longest(*columns, fillvalue=""):
        row = dict(zip(ROW_FIELDS, values))
        if any(str(v).strip() for k, v in row.items() if k != "is_additional_wo_details"):
            rows.append(row)
    return rows


def register(app: Flask, container: Container) -> None:
    @app.route(
        "/work-orders/<int:work_order_id>/details/new",
        methods=["GET", "POST"],
        endpoint="new_work_details",
    )
    @permission_required(Permission.MANAGE_WORK_DETAILS)
    def new_work_details(work_order_id: int):
        try:
            wo = container.work_order_service.get_work_order(work_order_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("work_orders"))

        rows = [{}]
        if request.method == "POST":
            rows = rows_from_form(request.form) or [{}]
            try:
                ids = container.work_details_service.add_work_details(
                    current_actor(), work_order_id, rows_from_form(request.form)
                )
                flash(f"{len(ids)} work detail(s) added", "success")
                return redirect(url_for("work_order_detail", work_order_id=work_order_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Adding work details to %s failed", work_order_id)
                flash("System error while adding work details", "danger")
        return render_template("work_details/new.html", work_order=wo, rows=rows, active_page="work_orders")

    @app.route("/work-details/<int:work_details_id>/edit", methods=["GET", "POST"], endpoint="edit_work_details")
    @permission_required(Permission.MANAGE_WORK_DETAILS)
    def edit_work_details(work_details_id: int):
        try:
            details = container.work_details_service.get_work_details(work_details_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("work_orders"))

        if request.method == "POST":
            try:
                container.work_details_service.update_work_details(current_actor(), work_details_id, request.form)
                flash("Work details updated", "success")
                return redirect(url_for("work_order_detail", work_order_id=details.work_order_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Work details %s update failed", work_details_id)
                flash("System error while updating work details", "danger")
        return render_template("work_details/edit.html", details=details, form=request.form, active_page="work_orders")

    @app.route("/work-details/<int:work_details_id>/delete", methods=["POST"], endpoint="delete_work_details")
    @permission_required(Permission.MANAGE_WORK_DETAILS)
    def delete_work_details(work_details_id: int):
        try:
            wo_id = container.work_details_service.delete_work_details(current_actor(), work_details_id)
            flash("Work details deleted", "success")
            return redirect(url_for("work_order_detail", work_order_id=wo_id))
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Work details %s delete failed", work_details_id)
            flash("System error while deleting work details", "danger")
        return redirect(url_for("work_orders"))
