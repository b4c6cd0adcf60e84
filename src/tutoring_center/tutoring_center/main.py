from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .enrollment.controller import register as register_enrollment
from .lessons.controller import register as register_lessons
from .payments.controller import register as register_payments
from .scheduler.controller import register as register_scheduler

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def load_settings():
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def create_app(container: Optional[Container] = None, *, settings=None) -> Flask:
    settings = settings or load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings.__name__,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")

        container = build_container(db_config=db_config, settings=settings)

    app.extensions["container"] = container

    register_error_handlers(app)
    register_attendance(app, container)
    register_payments(app, container)
    register_enrollment(app, container)
    register_lessons(app, container)
    register_scheduler(app, container)

    if bool(getattr(settings, "SCHEDULER_ENABLED", False)):
        container.scheduler_service.start()
        atexit.register(container.scheduler_service.shutdown)

    return app
