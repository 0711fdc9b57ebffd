from __future__ import annotations

import logging
from itertools import zip_longest

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, permission_required, uploaded_file
from ..core.enums import BastpStatus, Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)

MATERIAL_FIELDS = ("material_id", "size", "amount", "uom")


def material_rows_from_form(form) -> list[dict[str, str]]:
    """One dict per repeated `field[]` row; rows with no input at all are dropped."""
    columns = [form.getlist(f"{name}[]") for name in MATERIAL_FIELDS]
    rows = [dict(zip(MATERIAL_FIELDS, values)) for values in zip_longest(*columns, fillvalue="")]
    return [row for row in rows if any(str(v).strip() for v in row.values())]


def register(app: Flask, container: Container) -> None:
    svc = container.bastp_service

    @app.route("/bastp", endpoint="bastp_list")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def bastp_list():
        status = request.args.get("status", "")
        items = []
        try:
            items = svc.list_bastps(status=status or None)
        except DomainError as e:
            flash(str(e), "danger")
        return render_template(
            "bastp/index.html",
            bastps=items,
            status=status,
            statuses=list(BastpStatus),
            active_page="bastp",
        )

    @app.route("/bastp/new", methods=["GET", "POST"], endpoint="new_bastp")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def new_bastp():
        vessel_id = request.values.get("vessel_id", type=int)
        if request.method == "POST":
            try:
                bastp_id = svc.create_bastp(current_actor(), request.form, request.form.getlist("work_details_ids"))
                flash("BASTP created", "success")
                return redirect(url_for("bastp_detail", bastp_id=bastp_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("BASTP creation failed")
                flash("System error while creating the BASTP", "danger")

        eligible = svc.eligible_work_details(vessel_id) if vessel_id else []
        return render_template(
            "bastp/new.html",
            vessels=container.vessel_service.list_vessels(),
            vessel_id=vessel_id,
            eligible=eligible,
            form=request.form,
            active_page="bastp",
        )

    @app.route("/bastp/<int:bastp_id>", endpoint="bastp_detail")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def bastp_detail(bastp_id: int):
        try:
            view = svc.bastp_view(bastp_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("bastp_list"))
        return render_template(
            "bastp/detail.html",
            view=view,
            service_types=svc.service_types(),
            active_page="bastp",
        )

    @app.route("/bastp/<int:bastp_id>/document", methods=["POST"], endpoint="upload_bastp_document")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def upload_bastp_document(bastp_id: int):
        try:
            svc.upload_document(current_actor(), bastp_id, uploaded_file("document"))
            flash("BASTP document uploaded", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("BASTP %s document upload failed", bastp_id)
            flash("System error while uploading the document", "danger")
        return redirect(url_for("bastp_detail", bastp_id=bastp_id))

    @app.route("/bastp/<int:bastp_id>/document", methods=["GET"], endpoint="bastp_document")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def bastp_document(bastp_id: int):
        try:
            token = svc.document_token(bastp_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("bastp_detail", bastp_id=bastp_id))
        return redirect(url_for("serve_file", token=token, download="1"))

    @app.route("/bastp/<int:bastp_id>/advance", methods=["POST"], endpoint="advance_bastp")
    @permission_required(Permission.VERIFY_WORK)
    def advance_bastp(bastp_id: int):
        try:
            status = svc.advance_status(current_actor(), bastp_id, notes=request.form.get("notes"))
            flash(f"BASTP moved to {status.value}", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("BASTP %s status change failed", bastp_id)
            flash("System error while updating the BASTP status", "danger")
        return redirect(url_for("bastp_detail", bastp_id=bastp_id))

    @app.route("/bastp/<int:bastp_id>/services", methods=["POST"], endpoint="save_general_service")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def save_general_service(bastp_id: int):
        try:
            svc.save_general_service(current_actor(), bastp_id, request.form)
            flash("General service saved", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Saving general service on BASTP %s failed", bastp_id)
            flash("System error while saving the general service", "danger")
        return redirect(url_for("bastp_detail", bastp_id=bastp_id))

    @app.route("/bastp/services/<int:service_id>/delete", methods=["POST"], endpoint="delete_general_service")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def delete_general_service(service_id: int):
        try:
            bastp_id = svc.delete_general_service(current_actor(), service_id)
            flash("General service removed", "success")
            return redirect(url_for("bastp_detail", bastp_id=bastp_id))
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Deleting general service %s failed", service_id)
            flash("System error while removing the general service", "danger")
        return redirect(url_for("bastp_list"))

    @app.route("/bastp/<int:bastp_id>/delete", methods=["POST"], endpoint="delete_bastp")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def delete_bastp(bastp_id: int):
        try:
            svc.delete_bastp(current_actor(), bastp_id)
            flash("BASTP deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("BASTP %s delete failed", bastp_id)
            flash("System error while deleting the BASTP", "danger")
        return redirect(url_for("bastp_list"))

    materials = container.material_service

    @app.route("/bastp/<int:bastp_id>/materials", endpoint="bastp_materials")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def bastp_materials(bastp_id: int):
        try:
            view = materials.materials_view(bastp_id, work_details_id=request.args.get("work_details_id", type=int))
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("bastp_list"))
        return render_template(
            "bastp/materials.html",
            view=view,
            catalogue=materials.catalogue(),
            active_page="bastp",
        )

    @app.route(
        "/bastp/<int:bastp_id>/materials/<int:work_details_id>",
        methods=["POST"],
        endpoint="add_bastp_materials",
    )
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def add_bastp_materials(bastp_id: int, work_details_id: int):
        try:
            ids = materials.add_materials(current_actor(), bastp_id, work_details_id, material_rows_from_form(request.form))
            flash(f"{len(ids)} material(s) recorded", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Recording materials on BASTP %s failed", bastp_id)
            flash("System error while recording materials", "danger")
        return redirect(url_for("bastp_materials", bastp_id=bastp_id, work_details_id=work_details_id))

    @app.route("/bastp/materials/<int:usage_id>/edit", methods=["POST"], endpoint="update_bastp_material")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def update_bastp_material(usage_id: int):
        try:
            usage = materials.update_material(current_actor(), usage_id, request.form)
            flash("Material updated", "success")
            return redirect(url_for("bastp_materials", bastp_id=usage.bastp_id, work_details_id=usage.work_details_id))
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Updating material record %s failed", usage_id)
            flash("System error while updating the material", "danger")
        return redirect(request.referrer or url_for("bastp_list"))

    @app.route("/bastp/materials/<int:usage_id>/delete", methods=["POST"], endpoint="delete_bastp_material")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def delete_bastp_material(usage_id: int):
        try:
            usage = materials.delete_material(current_actor(), usage_id)
            flash("Material removed", "success")
            return redirect(url_for("bastp_materials", bastp_id=usage.bastp_id, work_details_id=usage.work_details_id))
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Deleting material record %s failed", usage_id)
            flash("System error while removing the material", "danger")
        return redirect(request.referrer or url_for("bastp_list"))

    @app.route("/bastp/material-list", methods=["POST"], endpoint="add_material_item")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def add_material_item():
        try:
            materials.add_catalogue_item(current_actor(), request.form)
            flash("Material added to the list", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Adding material to the list failed")
            flash("System error while adding the material", "danger")
        return redirect(request.referrer or url_for("bastp_list"))
