from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Farmer(db.Model):
    """
    Farmer and their shared feed stock pool.

    STOCK INVARIANTS:
    - main_stock_input is the cumulative total of bags ever added; it only grows.
    - main_stock_remaining is the live balance. It is decremented by the accrual
      engine once per unit of feed attributed to any child cycle.
    - Both are only ever changed with relative SQL updates
      (remaining = remaining - delta), never read-modify-write in Python.
    - main_stock_remaining is NOT clamped at zero; an overdraft shows as a
      negative balance.
    """
    __tablename__ = "farmers"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_farmers_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Normalized to lower case on create
    name = db.Column(db.String(120), nullable=False)

    main_stock_input = db.Column(db.Float, nullable=False, default=0.0)
    main_stock_remaining = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("farmers", lazy=True, passive_deletes=True))

    def __repr__(self) -> str:
        return f"<Farmer id={self.id} name={self.name!r} remaining={self.main_stock_remaining}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "main_stock_input": self.main_stock_input,
            "main_stock_remaining": self.main_stock_remaining,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
