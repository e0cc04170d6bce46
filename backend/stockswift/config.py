# backend/stockswift/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local store, created next to the instance on first run
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockswift.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar used to bucket sale timestamps into report months
    REPORT_TIMEZONE = os.environ.get("STOCKSWIFT_TIMEZONE", "UTC")

    EXPIRY_WARNING_DAYS = int(os.environ.get("STOCKSWIFT_EXPIRY_WARNING_DAYS", "30"))

    # Off by default: the checkout screen checks stock before finalizing
    ENFORCE_STOCK_ON_SALE = os.environ.get("STOCKSWIFT_ENFORCE_STOCK", "false").lower() in {"1", "true", "yes"}
