from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, permission_required, uploaded_file
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/permits", endpoint="permits")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def permits():
        search = request.args.get("q", "")
        return render_template(
            "permits/index.html",
            permits=container.permit_service.list_permits(search=search),
            q=search,
            active_page="permits",
        )

    @app.route("/work-orders/<int:work_order_id>/permit", methods=["POST"], endpoint="upload_permit")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def upload_permit(work_order_id: int):
        try:
            container.permit_service.upload_permit(current_actor(), work_order_id, uploaded_file("permit"))
            flash("Work permit uploaded", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Permit upload for work order %s failed", work_order_id)
            flash("System error while uploading the permit", "danger")
        return redirect(url_for("work_order_detail", work_order_id=work_order_id))

    @app.route("/permits/<int:permit_id>/delete", methods=["POST"], endpoint="delete_permit")
    @permission_required(Permission.MANAGE_WORK_ORDERS)
    def delete_permit(permit_id: int):
        try:
            container.permit_service.delete_permit(current_actor(), permit_id)
            flash("Work permit deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Permit %s delete failed", permit_id)
            flash("System error while deleting the permit", "danger")
        return redirect(request.referrer or url_for("permits"))

    @app.route("/permits/<int:permit_id>/file", endpoint="permit_file")
    @permission_required(Permission.VIEW_WORK_ORDERS)
    def permit_file(permit_id: int):
        purpose = "download" if request.args.get("download") == "1" else "view"
        try:
            token = container.permit_service.permit_token(permit_id, purpose=purpose)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("permits"))
        return redirect(url_for("serve_file", token=token, download="1" if purpose == "download" else None))
