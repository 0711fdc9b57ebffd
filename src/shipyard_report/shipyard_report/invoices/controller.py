from __future__ import annotations

import io
import logging

from flask import Flask, flash, redirect, render_template, request, send_file, url_for

from ..common.web import current_actor, page_arg, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container
from .pdf import render_invoice_pdf
from .service import STATUS_FILTERS

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    svc = container.invoice_service

    @app.route("/invoices", endpoint="invoices")
    @permission_required(Permission.VIEW_INVOICES)
    def invoices():
        search = request.args.get("q", "")
        status = request.args.get("status", "all")
        if status not in STATUS_FILTERS:
            status = "all"
        return render_template(
            "invoices/index.html",
            page=svc.list_invoices(search=search, status=status, page=page_arg()),
            stats=svc.invoice_stats(),
            q=search,
            status=status,
            active_page="invoices",
        )

    @app.route("/invoices/new", methods=["GET", "POST"], endpoint="new_invoice")
    @permission_required(Permission.CREATE_INVOICES)
    def new_invoice():
        work_order_id = request.values.get("work_order_id", type=int)
        if request.method == "POST" and work_order_id:
            try:
                invoice_id = svc.create_invoice(
                    current_actor(), work_order_id, request.form, bastp_id=request.form.get("bastp_id")
                )
                flash("Invoice created", "success")
                return redirect(url_for("invoice_detail", invoice_id=invoice_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Invoice creation for work order %s failed", work_order_id)
                flash("System error while creating the invoice", "danger")

        eligible = svc.eligible_work_orders()
        selected = next((e for e in eligible if e.work_order.id == work_order_id), None)
        details = []
        bastps = []
        if selected:
            details = container.work_details_service.list_for_work_order(selected.work_order.id)
            bastps = container.bastp_service.ready_for_invoice(vessel_id=selected.work_order.vessel_id)
        return render_template(
            "invoices/new.html",
            eligible=eligible,
            selected=selected,
            details=details,
            bastps=bastps,
            form=request.form,
            active_page="invoices",
        )

    @app.route("/invoices/<int:invoice_id>", endpoint="invoice_detail")
    @permission_required(Permission.VIEW_INVOICES)
    def invoice_detail(invoice_id: int):
        try:
            data = svc.invoice_print_data(invoice_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("invoices"))
        return render_template("invoices/detail.html", data=data, active_page="invoices")

    @app.route("/invoices/<int:invoice_id>/edit", methods=["GET", "POST"], endpoint="edit_invoice")
    @permission_required(Permission.EDIT_INVOICES)
    def edit_invoice(invoice_id: int):
        try:
            invoice = svc.get_invoice(invoice_id)
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("invoices"))

        if request.method == "POST":
            try:
                svc.update_invoice(current_actor(), invoice_id, request.form)
                flash("Invoice updated", "success")
                return redirect(url_for("invoice_detail", invoice_id=invoice_id))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Invoice %s update failed", invoice_id)
                flash("System error while updating the invoice", "danger")
        return render_template(
            "invoices/edit.html",
            invoice=invoice,
            lines=svc.invoice_lines(invoice_id),
            form=request.form,
            active_page="invoices",
        )

    @app.route("/invoices/<int:invoice_id>/delete", methods=["POST"], endpoint="delete_invoice")
    @permission_required(Permission.DELETE_INVOICES)
    def delete_invoice(invoice_id: int):
        try:
            svc.delete_invoice(current_actor(), invoice_id)
            flash("Invoice deleted", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Invoice %s delete failed", invoice_id)
            flash("System error while deleting the invoice", "danger")
        return redirect(url_for("invoices"))

    @app.route("/invoices/<int:invoice_id>/print", endpoint="print_invoice")
    @permission_required(Permission.VIEW_INVOICES)
    def print_invoice(invoice_id: int):
        try:
            data = svc.invoice_print_data(invoice_id)
            pdf = render_invoice_pdf(data, company_name=app.config.get("COMPANY_NAME", ""))
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("invoices"))
        except Exception:
            logger.exception("Rendering invoice %s failed", invoice_id)
            flash("System error while generating the invoice PDF", "danger")
            return redirect(url_for("invoice_detail", invoice_id=invoice_id))

        name = (data.invoice.invoice_number or f"invoice-{invoice_id}").replace("/", "-")
        return send_file(
            io.BytesIO(pdf),
            mimetype="application/pdf",
            as_attachment=request.args.get("download") == "1",
            download_name=f"{name}.pdf",
        )
