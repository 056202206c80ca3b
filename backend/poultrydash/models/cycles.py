from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

CYCLE_STATUS_ACTIVE = "active"
CYCLE_STATUS_ARCHIVED = "archived"


class Cycle(db.Model):
    """
    One growing run of birds, from day-old chicks to harvest.

    ACCRUAL STATE:
    - age is the last day index for which feed has been accrued. It never
      decreases and is only advanced by accrual_service.
    - intake is cumulative feed in bags for `age` days. Each accrual overwrites
      it with the freshly computed cumulative total.
    - start_date is day 1 (UTC-naive). It may be backdated at creation.

    LIFECYCLE:
    - active -> archived, one way. Archiving stamps end_date; the row is kept.
    """
    __tablename__ = "cycles"
    __table_args__ = (
        db.Index("ix_cycles_user_status", "user_id", "status"),
        db.CheckConstraint("doc >= 1", name="ck_cycles_doc_positive"),
        db.CheckConstraint("mortality >= 0", name="ck_cycles_mortality_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Optional parent stock pool
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id", ondelete="SET NULL"), nullable=True, index=True)

    name = db.Column(db.String(120), nullable=False)

    doc = db.Column(db.Integer, nullable=False)
    mortality = db.Column(db.Integer, nullable=False, default=0)
    age = db.Column(db.Integer, nullable=False, default=0)
    intake = db.Column(db.Float, nullable=False, default=0.0)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=CYCLE_STATUS_ACTIVE, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    farmer = db.relationship("Farmer", backref=db.backref("cycles", lazy=True))
    logs = db.relationship(
        "FarmerLog",
        back_populates="cycle",
        cascade="all",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def live_birds(self) -> int:
        return max(0, (self.doc or 0) - (self.mortality or 0))

    @property
    def is_active(self) -> bool:
        return self.status == CYCLE_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Cycle id={self.id} name={self.name!r} age={self.age} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "farmer_id": self.farmer_id,
            "name": self.name,
            "doc": self.doc,
            "mortality": self.mortality,
            "live_birds": self.live_birds,
            "age": self.age,
            "intake": self.intake,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
