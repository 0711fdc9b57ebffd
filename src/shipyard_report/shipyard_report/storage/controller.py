from __future__ import annotations

import logging

from flask import Flask, abort, send_file, request

from ..common.web import login_required
from ..core.exceptions import InvalidDocumentLinkError, StorageError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/files/<token>", endpoint="serve_file")
    @login_required
    def serve_file(token: str):
        try:
            doc = container.store.resolve_signed_token(token)
            path = container.store.local_path(doc.bucket, doc.path)
        except InvalidDocumentLinkError as e:
            logger.warning("Rejected document link: %s", e)
            abort(403)
        except StorageError as e:
            logger.warning("Document for link not available: %s", e)
            abort(404)
        download = request.args.get("download") == "1"
        return send_file(path, as_attachment=download, download_name=path.name)
