# Overview: Append-only audit log for cycles and stock pools.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import FarmerLog, LOG_TYPES
from ..validation import ValidationError
"""
Audit Log Invariants (authoritative)

- Append-only: no updates or deletes of existing rows.
- Rows are written inside the same DB transaction as the change they record;
  append_log only flushes, the caller commits.
- Each row has exactly one parent: a cycle or a farmer's stock pool.
- created_at is business time when the caller supplies it, DB time otherwise.
"""


def append_log(
    *,
    user_id: int,
    log_type: str,
    cycle_id: int | None = None,
    farmer_id: int | None = None,
    value_change: float = 0.0,
    previous_value: float | None = None,
    new_value: float | None = None,
    note: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
    session=None,
) -> FarmerLog:
    session = session or db.session

    if log_type not in LOG_TYPES:
        raise ValidationError(f"Invalid log type '{log_type}'. Must be one of: {', '.join(LOG_TYPES)}")
    if (cycle_id is None) == (farmer_id is None):
        raise ValidationError("log entry must reference exactly one of cycle_id or farmer_id")

    entry = FarmerLog(
        user_id=user_id,
        cycle_id=cycle_id,
        farmer_id=farmer_id,
        type=log_type,
        value_change=value_change,
        previous_value=previous_value,
        new_value=new_value,
        note=note[:255] if note else note,
    )
    if occurred_at is not None:
        entry.created_at = occurred_at

    session.add(entry)
    session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_logs(
    *,
    cycle_id: int | None = None,
    farmer_id: int | None = None,
    limit: int = 200,
    session=None,
) -> list[FarmerLog]:
    """Entries for one parent, newest first."""
    session = session or db.session
    if (cycle_id is None) == (farmer_id is None):
        raise ValidationError("specify exactly one of cycle_id or farmer_id")

    q = session.query(FarmerLog)
    if cycle_id is not None:
        q = q.filter(FarmerLog.cycle_id == cycle_id)
    else:
        q = q.filter(FarmerLog.farmer_id == farmer_id)

    return q.order_by(FarmerLog.created_at.desc(), FarmerLog.id.desc()).limit(limit).all()
