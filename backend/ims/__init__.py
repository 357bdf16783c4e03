# backend/ims/__init__.py
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        # Overrides must land before extensions read the config
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # SQLite ignores SELECT ... FOR UPDATE; serialize writers at BEGIN instead
    from .services.concurrency import serialize_sqlite_writes
    with app.app_context():
        serialize_sqlite_writes(db.engine)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
