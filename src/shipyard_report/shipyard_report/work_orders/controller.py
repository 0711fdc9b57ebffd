from __future__ import annotations

import logging

from flask import Flask, flash, jsonify, redirect, render_template, request, url_for

from ..common.web import current_actor, page_arg, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/work-orders", endpoint="work_orders")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def work_orders():
        search = request.args.get("q", "")
        vessel_id = request.args.get("vessel_id", type=int)
        page = container.work_order_service.list_work_orders(search=search, vessel_id=vessel_id, page=page_arg())
        return render_template(
            "work_orders/index.html",
            page=page,
            q=search,
            vessel_id=vessel_id,
            vessels=container.vessel_service.list_vessels(),
            active_page="work_orders",
        )

    @app.route("/work-orders/new", methods=["GET", "POST"], endpoint="new_work_order")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def new_work_order():
        if request.method == "POST":
            try:
                wo_id = container.work_order_service.create_work_order(current_actor(), request.form)
                flash("Work order created. Add its work details next.", "success")
                return redirect(url_for("new_work_details", work_order_id=wo_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Work order creation failed")
                flash("System error while creating the work order", "danger")
        return render_template(
            "work_orders/form.html",
            work_order=None,
            form=request.form,
            vessels=container.vessel_service.list_vessels(),
            active_page="work_orders",
        )

    @app.route("/work-orders/<int:work_order_id>", endpoint="work_order_detail")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def work_order_detail(work_order_id: int):
        try:
            wo = container.work_order_service.get_work_order(work_order_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("work_orders"))
        return render_template(
            "work_orders/detail.html",
            work_order=wo,
            details=container.work_details_service.list_for_work_order(wo.id),
            summary=container.progress_service.work_order_summary(wo.id),
            permit=container.permit_service.permit_for_work_order(wo.id),
            active_page="work_orders",
        )

    @app.route("/work-orders/<int:work_order_id>/edit", methods=["GET", "POST"], endpoint="edit_work_order")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def edit_work_order(work_order_id: int):
        try:
            wo = container.work_order_service.get_work_order(work_order_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("work_orders"))

        if request.method == "POST":
            try:
                container.work_order_service.update_work_order(current_actor(), work_order_id, request.form)
                flash("Work order updated", "success")
                return redirect(url_for("work_order_detail", work_order_id=work_order_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Work order %s update failed", work_order_id)
                flash("System error while updating the work order", "danger")
        return render_template(
            "work_orders/form.html",
            work_order=wo,
            form=request.form,
            vessels=container.vessel_service.list_vessels(),
            active_page="work_orders",
        )

    @app.route("/work-orders/<int:work_order_id>/delete", methods=["POST"], endpoint="delete_work_order")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def delete_work_order(work_order_id: int):
        try:
            container.work_order_service.delete_work_order(current_actor(), work_order_id)
            flash("Work order deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Work order %s delete failed", work_order_id)
            flash("System error while deleting the work order", "danger")
        return redirect(url_for("work_orders"))

    @app.route("/api/work-orders/<int:work_order_id>/progress", endpoint="api_work_order_progress")
    @permission_required(Permission.VIEW_WORK_PROGRESS)
    def api_work_order_progress(work_order_id: int):
        try:
            summary = container.progress_service.work_order_summary(work_order_id)
        except DomainError as e:
            return jsonify({"error": str(e)}), 404
        return jsonify(
            {
                "work_order_id": summary.work_order_id,
                "overall_progress": summary.overall_progress,
                "is_completed": summary.is_completed,
                "details": [
                    {
                        "work_details_id": d.work_details_id,
                        "description": d.description,
                        "current_progress": d.current_progress,
                        "last_report_date": d.last_report_date.isoformat() if d.last_report_date else None,
                        "is_completed": d.is_completed,
                    }
                    for d in summary.details
                ],
            }
        )
