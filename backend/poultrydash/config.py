# backend/poultrydash/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///poultrydash.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Day boundaries for cycle age are midnights in this timezone
    FARM_TIMEZONE = os.environ.get("FARM_TIMEZONE", "UTC")

    FEED_SYNC_MAX_WORKERS = int(os.environ.get("FEED_SYNC_MAX_WORKERS", "8"))
    FEED_SYNC_TIMEOUT_SECONDS = float(os.environ.get("FEED_SYNC_TIMEOUT_SECONDS", "30"))

    # Shared secret presented by the scheduled trigger; unset disables the cron endpoint
    CRON_SECRET = os.environ.get("CRON_SECRET")

    LOW_STOCK_THRESHOLD_BAGS = float(os.environ.get("LOW_STOCK_THRESHOLD_BAGS", "5"))
