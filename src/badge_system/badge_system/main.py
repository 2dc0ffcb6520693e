from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .badges.controller import register as register_badges
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_PRESENCE_QUEUE_SIZE,
    DEFAULT_SITES_CACHE_SECONDS,
    TELEWORK_SITE,
)
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .reports.controller import register as register_reports
from .requests.controller import register as register_requests
from .sessions.controller import register as register_sessions
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("settings=%s db=%s", settings_module, DBConfig.from_settings(db_config).describe())

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            geolocation_timeout=float(getattr(settings, "GEOLOCATION_TIMEOUT_SECONDS", DEFAULT_GEOLOCATION_TIMEOUT_SECONDS)),
            telework_site=getattr(settings, "TELEWORK_SITE", TELEWORK_SITE),
            default_weekly_hours=getattr(settings, "DEFAULT_WEEKLY_HOURS", None),
            presence_queue_size=int(getattr(settings, "PRESENCE_QUEUE_SIZE", DEFAULT_PRESENCE_QUEUE_SIZE)),
            sites_cache_seconds=float(getattr(settings, "SITES_CACHE_SECONDS", DEFAULT_SITES_CACHE_SECONDS)),
            caller_address=getattr(settings, "CALLER_ADDRESS", None),
        )

    app.extensions["badge_container"] = container
    register_error_handlers(app)
    register_users(app, container)
    register_badges(app, container)
    register_sessions(app, container)
    register_requests(app, container)
    register_reports(app, container)

    return app
