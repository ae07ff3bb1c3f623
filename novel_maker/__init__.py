from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask
from dotenv import load_dotenv

from .config import Config
from .extensions import csrf, db, migrate
from .db_utils import ensure_database_schema
from .repository import SqlSnapshotRepository
from .store import STORE_EXTENSION_KEY, ProjectStore


BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.json.ensure_ascii = False

    configure_logging(app)
    register_extensions(app)
    register_blueprints(app)

    with app.app_context():
        ensure_database_schema()
        store = ProjectStore(SqlSnapshotRepository(), name=app.config["STORE_SNAPSHOT_NAME"])
        app.extensions[STORE_EXTENSION_KEY] = store.load()

    return app


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("novel_maker").setLevel(level)


def register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)


def register_blueprints(app: Flask) -> None:
    from .grok import bp as grok_bp
    from .main import bp as main_bp
    from .projects import bp as projects_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(grok_bp)


__all__ = ["create_app", "db"]
