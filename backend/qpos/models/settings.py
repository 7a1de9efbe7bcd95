from __future__ import annotations

from ..extensions import db
from qpos.time_utils import to_utc_z


class KeyValue(db.Model):
    """
    Local key-value storage.

    Holds small JSON documents that are not worth a table of their own:
    the active cart snapshot and the store settings.
    """
    __tablename__ = "key_values"

    key = db.Column(db.String(128), primary_key=True)
    value_json = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value_json,
            "updated_at": to_utc_z(self.updated_at),
        }
