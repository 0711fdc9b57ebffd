from __future__ import annotations

import logging

from flask import Flask, render_template

from ..common.web import login_required
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        return render_template("dashboard.html", dashboard=container.dashboard_service.build(), active_page="dashboard")
