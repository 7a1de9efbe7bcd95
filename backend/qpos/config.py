# backend/qpos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/qpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///qpos.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("QPOS_LOG_LEVEL", "INFO")

    # Store defaults; runtime overrides live in settings_service
    STORE_NAME = os.environ.get("QPOS_STORE_NAME", "Qpos Store")
    STORE_ADDRESS = os.environ.get("QPOS_STORE_ADDRESS", "123 Retail St, Market City")
    STORE_PHONE = os.environ.get("QPOS_STORE_PHONE", "+91 98765 43210")
    CURRENCY = os.environ.get("QPOS_CURRENCY", "INR")
    CURRENCY_SYMBOL = os.environ.get("QPOS_CURRENCY_SYMBOL", "₹")

    # Flat tax rate in basis points (1800 = 18%)
    TAX_RATE_BPS = _env_int("QPOS_TAX_RATE_BPS", 1800)

    # Cash/split settlement slack: one currency unit
    SETTLEMENT_TOLERANCE_CENTS = _env_int("QPOS_SETTLEMENT_TOLERANCE_CENTS", 100)

    # Dev frontends allowed to call the API
    CORS_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
