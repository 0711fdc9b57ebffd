from __future__ import annotations

import io
import logging

from flask import Flask, flash, redirect, render_template, request, send_file, url_for

from ..common.web import current_actor, permission_required
from ..core.enums import Permission
from ..core.exceptions import DomainError
from ..container import Container
from .service import ENTITIES, FORMATS, IMPORT_COLUMNS

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    svc = container.export_service

    def _page(result=None):
        return render_template(
            "exports/index.html",
            entities=ENTITIES,
            importable=svc.importable_entities(current_actor()),
            import_columns=IMPORT_COLUMNS,
            formats=list(FORMATS),
            vessels=container.vessel_service.list_vessels(),
            result=result,
            active_page="exports",
        )

    @app.route("/exports", endpoint="exports")
    @permission_required(
        Permission.EXPORT_DATA,
        Permission.MANAGE_VESSELS,
        Permission.MANAGE_WORK_ORDERS,
        Permission.MANAGE_WORK_DETAILS,
        Permission.MANAGE_WORK_PROGRESS,
    )
    def exports():
        return _page()

    @app.route("/exports/download", methods=["POST"], endpoint="download_export")
    @permission_required(Permission.EXPORT_DATA)
    def download_export():
        vessel_ids = [int(v) for v in request.form.getlist("vessel_ids") if str(v).isdigit()]
        try:
            export = svc.export(
                current_actor(),
                entity=request.form.get("entity", ""),
                fmt=request.form.get("format", "csv"),
                vessel_ids=vessel_ids or None,
            )
        except DomainError as e:
            flash(str(e), "danger")
            return redirect(url_for("exports"))
        except Exception:
            logger.exception("Export failed")
            flash("System error while exporting data", "danger")
            return redirect(url_for("exports"))
        return send_file(
            io.BytesIO(export.data),
            mimetype=export.mimetype,
            as_attachment=True,
            download_name=export.filename,
        )

    @app.route("/exports/import", methods=["POST"], endpoint="import_data")
    @permission_required(
        Permission.MANAGE_VESSELS,
        Permission.MANAGE_WORK_ORDERS,
        Permission.MANAGE_WORK_DETAILS,
        Permission.MANAGE_WORK_PROGRESS,
    )
    def import_data():
        storage = request.files.get("file")
        result = None
        try:
            result = svc.import_data(
                current_actor(),
                request.form.get("entity", ""),
                storage.read() if storage else b"",
                validate_only=request.form.get("validate_only") == "1",
                skip_duplicates=request.form.get("skip_duplicates") == "1",
                overwrite=request.form.get("overwrite") == "1",
            )
            flash(result.message, "success" if result.success else "warning")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Import failed")
            flash("System error while importing data", "danger")
        return _page(result)
