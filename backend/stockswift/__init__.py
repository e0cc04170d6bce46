# backend/stockswift/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One storage handle for the whole app, shared by every repository
    from .wiring import EXTENSION_KEY, build_services
    services = build_services(app)
    app.extensions[EXTENSION_KEY] = services

    with app.app_context():
        services.storage.init()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
