from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.datetime_utils import today_local
from ..common.web import current_actor, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    svc = container.verification_service

    @app.route("/verification", endpoint="verification")
    @permission_required(Permission.VERIFY_WORK, Permission.VIEW_ALL_REPORTS)
    def verification():
        return render_template(
            "verification/index.html",
            work_pending=svc.list_work_pending(),
            work_verified=svc.list_work_verified(),
            operation_pending=svc.list_operation_pending(),
            operation_verified=svc.list_operation_verified(),
            today=today_local(),
            active_page="verification",
        )

    @app.route("/verification/work/<int:work_details_id>", methods=["POST"], endpoint="verify_work_details")
    @permission_required(Permission.VERIFY_WORK)
    def verify_work_details(work_details_id: int):
        try:
            svc.verify_work_details(
                current_actor(),
                work_details_id,
                verification_date=request.form.get("verification_date"),
                notes=request.form.get("notes"),
            )
            flash("Work verified", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Work verification for %s failed", work_details_id)
            flash("System error while verifying work", "danger")
        return redirect(url_for("verification"))

    @app.route("/verification/work/<int:verification_id>/remove", methods=["POST"], endpoint="remove_work_verification")
    @permission_required(Permission.VERIFY_WORK)
    def remove_work_verification(verification_id: int):
        try:
            svc.remove_work_verification(current_actor(), verification_id)
            flash("Work verification removed", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Removing work verification %s failed", verification_id)
            flash("System error while removing the verification", "danger")
        return redirect(url_for("verification"))

    @app.route("/verification/operation/<int:work_order_id>", methods=["POST"], endpoint="verify_operation")
    @permission_required(Permission.VERIFY_WORK)
    def verify_operation(work_order_id: int):
        try:
            svc.verify_operation(
                current_actor(), work_order_id, verification_date=request.form.get("verification_date")
            )
            flash("Operation verified", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Operation verification for %s failed", work_order_id)
            flash("System error while verifying the operation", "danger")
        return redirect(url_for("verification"))

    @app.route(
        "/verification/operation/<int:verification_id>/remove",
        methods=["POST"],
        endpoint="remove_operation_verification",
    )
    @permission_required(Permission.VERIFY_WORK)
    def remove_operation_verification(verification_id: int):
        try:
            svc.remove_operation_verification(current_actor(), verification_id)
            flash("Operation verification removed", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Removing operation verification %s failed", verification_id)
            flash("System error while removing the verification", "danger")
        return redirect(url_for("verification"))
