# backend/storefront/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Working state: in-memory SQLite, rebuilt from the durable record at startup
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///:memory:",
    )
    # Durable record: one JSON row per namespace in backend/instance/storefront.sqlite3
    SQLALCHEMY_BINDS = {
        "durable": os.environ.get("STOREFRONT_DURABLE_URI", "sqlite:///storefront.sqlite3"),
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STOREFRONT_STATE_NAMESPACE = os.environ.get(
        "STOREFRONT_STATE_NAMESPACE", "steal-a-brainrot-state-v1"
    )

    # Seed owner account, created on first start
    STOREFRONT_ADMIN_USERNAME = os.environ.get("STOREFRONT_ADMIN_USERNAME", "SammySelling")
    STOREFRONT_ADMIN_PASSWORD = os.environ.get("STOREFRONT_ADMIN_PASSWORD", "Elliot1993")
    STOREFRONT_ADMIN_DISPLAY_NAME = os.environ.get("STOREFRONT_ADMIN_DISPLAY_NAME", "Sammy (Owner)")

    STOREFRONT_SEED_CATALOG = _env_flag("STOREFRONT_SEED_CATALOG", True)
    STOREFRONT_AUTOLOAD_STATE = _env_flag("STOREFRONT_AUTOLOAD_STATE", True)
