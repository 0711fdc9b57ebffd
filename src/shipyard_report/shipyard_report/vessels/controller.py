from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/vessels", endpoint="vessels")
    @permission_required(Permission.VIEW_VESSELS)
    def vessels():
        search = request.args.get("q", "")
        items = container.vessel_service.list_vessels(search=search)
        return render_template("vessels/index.html", vessels=items, q=search, active_page="vessels")

    @app.route("/vessels/new", methods=["GET", "POST"], endpoint="new_vessel")
    @permission_required(Permission.MANAGE_VESSELS)
    def new_vessel():
        if request.method == "POST":
            try:
                container.vessel_service.create_vessel(current_actor(), request.form)
                flash("Vessel created", "success")
                return redirect(url_for("vessels"))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Vessel creation failed")
                flash("System error while creating the vessel", "danger")
        return render_template("vessels/form.html", vessel=None, form=request.form, active_page="vessels")

    @app.route("/vessels/<int:vessel_id>", endpoint="vessel_detail")
    @permission_required(Permission.VIEW_VESSELS)
    def vessel_detail(vessel_id: int):
        try:
            data = container.vessel_service.get_vessel_work_orders(vessel_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("vessels"))
        return render_template("vessels/detail.html", data=data, active_page="vessels")

    @app.route("/vessels/<int:vessel_id>/edit", methods=["GET", "POST"], endpoint="edit_vessel")
    @permission_required(Permission.MANAGE_VESSELS)
    def edit_vessel(vessel_id: int):
        try:
            vessel = container.vessel_service.get_vessel(vessel_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("vessels"))

        if request.method == "POST":
            try:
                container.vessel_service.update_vessel(current_actor(), vessel_id, request.form)
                flash("Vessel updated", "success")
                return redirect(url_for("vessel_detail", vessel_id=vessel_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Vessel %s update failed", vessel_id)
                flash("System error while updating the vessel", "danger")
        return render_template("vessels/form.html", vessel=vessel, form=request.form, active_page="vessels")

    @app.route("/vessels/<int:vessel_id>/delete", methods=["POST"], endpoint="delete_vessel")
    @permission_required(Permission.MANAGE_VESSELS)
    def delete_vessel(vessel_id: int):
        try:
            container.vessel_service.delete_vessel(current_actor(), vessel_id)
            flash("Vessel deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Vessel %s delete failed", vessel_id)
            flash("System error while deleting the vessel", "danger")
        return redirect(url_for("vessels"))
