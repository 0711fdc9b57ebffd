from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.datetime_utils import fmt_date, fmt_long_date
from .common.money import format_idr
from .core.constants import MAX_UPLOAD_BYTES
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import build_container
from .activity_log.controller import register as register_activity_log
from .bastp.controller import register as register_bastp
from .dashboard.controller import register as register_dashboard
from .exports.controller import register as register_exports
from .invoices.controller import register as register_invoices
from .permits.controller import register as register_permits
from .progress.controller import register as register_progress
from .storage.controller import register as register_storage
from .users.controller import register as register_users
from .verification.controller import register as register_verification
from .vessels.controller import register as register_vessels
from .work_details.controller import register as register_work_details
from .work_orders.controller import register as register_work_orders

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[3]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates", static_folder="../../../static")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", MAX_UPLOAD_BYTES + 1024 * 1024))
    app.config["COMPANY_NAME"] = getattr(settings, "COMPANY_NAME", "")
    upload_folder = str(getattr(settings, "UPLOAD_FOLDER", ROOT / "uploads"))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=ROOT / "database" / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=ROOT / "database" / "seed.sql")
        ensure_demo_users(db_config)
        logger.info("demo seed ready")

    container = build_container(db_config=db_config, upload_folder=upload_folder, secret_key=app.secret_key)
    app.extensions["shipyard_report"] = container

    app.jinja_env.filters["idr"] = format_idr
    app.jinja_env.filters["date"] = fmt_date
    app.jinja_env.filters["long_date"] = fmt_long_date

    register_users(app, container)
    register_dashboard(app, container)
    register_vessels(app, container)
    register_work_orders(app, container)
    register_work_details(app, container)
    register_progress(app, container)
    register_permits(app, container)
    register_verification(app, container)
    register_bastp(app, container)
    register_invoices(app, container)
    register_activity_log(app, container)
    register_exports(app, container)
    register_storage(app, container)

    return app
