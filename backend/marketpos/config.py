# backend/marketpos/config.py
from __future__ import annotations
import os


def _sqlite_engine_options(uri: str, timeout: float) -> dict:
    # Busy timeout for SQLite write locks; a checkout that waits longer fails.
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    return {}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/marketpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///marketpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DB_TIMEOUT_SECONDS = float(os.environ.get("DB_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI, DB_TIMEOUT_SECONDS)

    # Store-level billing defaults; clients may send their own tax_percent per sale
    DEFAULT_TAX_PERCENT = os.environ.get("DEFAULT_TAX_PERCENT", "5")
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    )
