"""Configuration module for the trade demo backend."""

from trade_demo_backend.config.environment import is_dev_mode
from trade_demo_backend.config.logging import configure_logging
from trade_demo_backend.config.settings import (
    AppSettings,
    MongoSettings,
    Settings,
    get_settings,
    load_app_settings,
    load_mongo_settings,
)

__all__ = [
    "AppSettings",
    "MongoSettings",
    "Settings",
    "configure_logging",
    "get_settings",
    "is_dev_mode",
    "load_app_settings",
    "load_mongo_settings",
]
