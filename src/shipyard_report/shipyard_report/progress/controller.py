from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, date_arg, page_arg, permission_required, uploaded_file
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container
from .model import ProgressFilter

logger = logging.getLogger(__name__)


def _filter_from_args(args) -> ProgressFilter:
    return ProgressFilter(
        date_from=date_arg("date_from"),
        date_to=date_arg("date_to"),
        vessel_id=args.get("vessel_id", type=int),
        work_order_id=args.get("work_order_id", type=int),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/progress", endpoint="progress")
    @permission_required(Permission.VIEW_WORK_PROGRESS)
    def progress():
        flt = _filter_from_args(request.args)
        page = None
        try:
            page = container.progress_service.list_progress(flt, page=page_arg())
        except DomainError as e:
            flash(str(e), "danger")
        return render_template(
            "progress/index.html",
            page=page,
            flt=flt,
            stats=container.progress_service.progress_stats(),
            vessels=container.vessel_service.list_vessels(),
            active_page="progress",
        )

    @app.route("/work-details/<int:work_details_id>/progress", methods=["GET", "POST"], endpoint="work_details_progress")
    @permission_required(Permission.VIEW_WORK_PROGRESS)
    def work_details_progress(work_details_id: int):
        try:
            details = container.work_details_service.get_work_details(work_details_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("progress"))

        if request.method == "POST":
            try:
                container.progress_service.add_progress(
                    current_actor(),
                    work_details_id=work_details_id,
                    form=request.form,
                    evidence=uploaded_file("evidence"),
                )
                flash("Progress reported", "success")
                return redirect(url_for("work_details_progress", work_details_id=work_details_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Progress report for work details %s failed", work_details_id)
                flash("System error while saving progress", "danger")

        return render_template(
            "progress/details.html",
            details=details,
            history=container.progress_service.history(work_details_id),
            form=request.form,
            active_page="progress",
        )

    @app.route("/progress/<int:progress_id>/edit", methods=["GET", "POST"], endpoint="edit_progress")
    @permission_required(Permission.MANAGE_WORK_PROGRESS)
    def edit_progress(progress_id: int):
        try:
            record = container.progress_service.get_progress(progress_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("progress"))

        if request.method == "POST":
            try:
                container.progress_service.update_progress(
                    current_actor(), progress_id, form=request.form, evidence=uploaded_file("evidence")
                )
                flash("Progress report updated", "success")
                return redirect(url_for("work_details_progress", work_details_id=record.work_details_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Progress %s update failed", progress_id)
                flash("System error while updating progress", "danger")
        return render_template("progress/edit.html", record=record, form=request.form, active_page="progress")

    @app.route("/progress/<int:progress_id>/delete", methods=["POST"], endpoint="delete_progress")
    @permission_required(Permission.MANAGE_WORK_PROGRESS)
    def delete_progress(progress_id: int):
        target = url_for("progress")
        try:
            record = container.progress_service.get_progress(progress_id)
            target = url_for("work_details_progress", work_details_id=record.work_details_id)
            container.progress_service.delete_progress(current_actor(), progress_id)
            flash("Progress report deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Progress %s delete failed", progress_id)
            flash("System error while deleting progress", "danger")
        return redirect(target)

    @app.route("/progress/<int:progress_id>/evidence", endpoint="progress_evidence")
    @permission_required(Permission.VIEW_WORK_PROGRESS)
    def progress_evidence(progress_id: int):
        purpose = "download" if request.args.get("download") == "1" else "view"
        try:
            token = container.progress_service.evidence_token(progress_id, purpose=purpose)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("progress"))
        return redirect(url_for("serve_file", token=token, download="1" if purpose == "download" else None))
