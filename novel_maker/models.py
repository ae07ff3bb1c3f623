from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreSnapshot(db.Model):
    """One named, versioned JSON blob holding the whole project store."""

    __tablename__ = "store_snapshots"

    name = db.Column(db.String(120), primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<StoreSnapshot {self.name} v{self.version}>"
