from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .access.controller import register as register_access
from .attendance.controller import register as register_attendance
from .container import AccessSettings, Container, build_container
from .credentials.controller import register as register_credentials
from .database.bootstrap import apply_schema, list_tables
from .membership.controller import register as register_membership
from .occupancy.controller import register as register_occupancy

logger = logging.getLogger("gym_access")


def settings_from_module(settings) -> AccessSettings:
    return AccessSettings(
        token_secret=str(getattr(settings, "ACCESS_TOKEN_SECRET")),
        rotation_seconds=int(getattr(settings, "TOKEN_ROTATION_SECONDS", 30)),
        tolerance_seconds=int(getattr(settings, "TOKEN_TOLERANCE_SECONDS", 60)),
        default_location_id=str(getattr(settings, "DEFAULT_LOCATION_ID", "main")),
        default_currency=str(getattr(settings, "DEFAULT_CURRENCY", "MXN")),
        max_capacity=int(getattr(settings, "MAX_CAPACITY", 100)),
        replay_guard=bool(getattr(settings, "REPLAY_GUARD", False)),
    )


def register_features(app: Flask, container: Container) -> None:
    register_credentials(app, container)
    register_access(app, container)
    register_membership(app, container)
    register_attendance(app, container)
    register_occupancy(app, container)
    atexit.register(container.rotations.close_all)


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = dict(getattr(settings, "DB_CONFIG"))
    db_config.setdefault("timeout_seconds", int(getattr(settings, "STORE_TIMEOUT_SECONDS", 5)))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(db_config=db_config, settings=settings_from_module(settings))

    register_features(app, container)
    return app
