# Overview: Store settings (name, contact, currency, flat tax rate) kept in local key-value storage.

"""
Resolution order: stored override -> app config default.

Only the keys in SETTING_DEFAULTS exist. The tax rate is a single flat rate
in basis points; there is no per-jurisdiction logic.
"""

from __future__ import annotations

from flask import current_app

from ..models import KeyValue
from ..validation import ValidationError

SETTINGS_KEY = "store.settings"

# setting name -> Config attribute holding its default
SETTING_DEFAULTS = {
    "store_name": "STORE_NAME",
    "store_address": "STORE_ADDRESS",
    "store_phone": "STORE_PHONE",
    "currency": "CURRENCY",
    "currency_symbol": "CURRENCY_SYMBOL",
    "tax_rate_bps": "TAX_RATE_BPS",
}

_STRING_SETTINGS = {"store_name", "store_address", "store_phone", "currency", "currency_symbol"}
MAX_TAX_RATE_BPS = 10_000


def _defaults() -> dict:
    return {name: current_app.config[attr] for name, attr in SETTING_DEFAULTS.items()}


def _validate(name: str, value):
    if name not in SETTING_DEFAULTS:
        raise ValidationError(f"Unknown setting: {name}")
    if name == "tax_rate_bps":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError("tax_rate_bps must be an integer")
        if value < 0 or value > MAX_TAX_RATE_BPS:
            raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")
        return value
    if name in _STRING_SETTINGS:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} must be a non-empty string")
        return value.strip()
    return value


def get_settings(session) -> dict:
    row = session.get(KeyValue, SETTINGS_KEY)
    stored = row.value_json if row and row.value_json else {}
    effective = _defaults()
    effective.update({k: v for k, v in stored.items() if k in SETTING_DEFAULTS})
    return effective


def get_tax_rate_bps(session) -> int:
    return get_settings(session)["tax_rate_bps"]


def update_settings(session, patch: dict) -> dict:
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("No settings provided")

    cleaned = {name: _validate(name, value) for name, value in patch.items()}

    row = session.get(KeyValue, SETTINGS_KEY)
    if row is None:
        row = KeyValue(key=SETTINGS_KEY, value_json={})
        session.add(row)
    # Reassign so the JSON column is flagged dirty
    row.value_json = {**(row.value_json or {}), **cleaned}
    session.commit()

    current_app.logger.info("Store settings updated: %s", sorted(cleaned))
    return get_settings(session)


def reset_settings(session) -> dict:
    row = session.get(KeyValue, SETTINGS_KEY)
    if row is not None:
        session.delete(row)
        session.commit()
    return get_settings(session)
