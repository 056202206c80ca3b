from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

LOG_TYPE_FEED = "FEED"
LOG_TYPE_MORTALITY = "MORTALITY"
LOG_TYPE_NOTE = "NOTE"
LOG_TYPE_STOCK_ADD = "STOCK_ADD"

LOG_TYPES = (LOG_TYPE_FEED, LOG_TYPE_MORTALITY, LOG_TYPE_NOTE, LOG_TYPE_STOCK_ADD)


class FarmerLog(db.Model):
    """
    Audit trail entry for one state change.

    IMMUTABLE: Never update or delete. Append-only; rows go away only by
    cascade when their parent cycle or farmer is deleted.

    Each row is linked to exactly one of cycle_id / farmer_id:
    - FEED, MORTALITY and NOTE rows belong to a cycle.
    - STOCK_ADD rows belong to a farmer's stock pool.
    """
    __tablename__ = "farmer_logs"
    __table_args__ = (
        db.CheckConstraint(
            "(cycle_id IS NULL) <> (farmer_id IS NULL)",
            name="ck_farmer_logs_single_parent",
        ),
        db.Index("ix_farmer_logs_cycle_created", "cycle_id", "created_at"),
        db.Index("ix_farmer_logs_farmer_created", "farmer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    cycle_id = db.Column(db.Integer, db.ForeignKey("cycles.id", ondelete="CASCADE"), nullable=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id", ondelete="CASCADE"), nullable=True)

    type = db.Column(db.String(16), nullable=False, index=True)

    value_change = db.Column(db.Float, nullable=False, default=0.0)
    previous_value = db.Column(db.Float, nullable=True)
    new_value = db.Column(db.Float, nullable=True)

    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime,
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    cycle = db.relationship("Cycle", back_populates="logs")
    farmer = db.relationship(
        "Farmer",
        backref=db.backref("logs", lazy=True, cascade="all"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "cycle_id": self.cycle_id,
            "farmer_id": self.farmer_id,
            "type": self.type,
            "value_change": self.value_change,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
