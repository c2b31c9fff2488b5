# backend/storefront/__init__.py
from flask import Flask

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)

    # Import models so every bind's metadata is registered before create_all
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()
        if app.config.get("STOREFRONT_AUTOLOAD_STATE", True):
            from .services.state_service import load_state
            outcome = load_state()
            app.logger.info(
                "Storefront state %s from namespace %r",
                outcome,
                app.config["STOREFRONT_STATE_NAMESPACE"],
            )

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
