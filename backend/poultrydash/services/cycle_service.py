# Overview: Service-layer operations for production cycles; start, mortality, end, details.

"""
Cycle Lifecycle

STATE MACHINE:
    active -> archived

    active:   accrues feed daily, accepts mortality entries
    archived: read-only history; may be deleted by its owner

RULES:
1. Cannot reverse states (archived -> active is forbidden)
2. Archiving flips the status and stamps end_date; the row and its logs stay put
3. Only archived cycles can be deleted; their logs go with them
4. age/intake are owned by accrual_service; nothing here writes them
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Union

from sqlalchemy import func, update

from ..extensions import db
from ..models import Cycle, Farmer, CYCLE_STATUS_ACTIVE, CYCLE_STATUS_ARCHIVED
from ..models.logs import LOG_TYPE_MORTALITY, LOG_TYPE_NOTE
from ..time_utils import backdated_start, to_utc_z, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    enforce_rules_cycle_create,
    normalize_name,
    validate_search,
)
from .accrual_service import accrue_cycle, farm_timezone
from .concurrency import atomic, run_with_retry
from .farmer_service import get_farmer
from .log_service import append_log, list_logs

logger = logging.getLogger(__name__)

CYCLE_STATUS_FILTERS = {CYCLE_STATUS_ACTIVE, CYCLE_STATUS_ARCHIVED, "all"}

CYCLE_SORT_COLUMNS = {
    "name": Cycle.name,
    "age": Cycle.age,
    "start_date": Cycle.start_date,
    "end_date": Cycle.end_date,
}


class LifecycleError(ConflictError):
    """Raised when an invalid cycle status transition is attempted."""


def get_cycle(user_id: int, cycle_id: int) -> Cycle:
    cycle = db.session.query(Cycle).filter_by(id=cycle_id, user_id=user_id).first()
    if cycle is None:
        raise NotFoundError("cycle not found")
    return cycle


def create_cycle(
    user_id: int,
    *,
    doc: int,
    age: int = 1,
    name: str | None = None,
    farmer_id: int | None = None,
    now: datetime | None = None,
) -> Cycle:
    """
    Start a cycle and seed its accrual state immediately.

    `age` is the cycle's age today as reported by the operator; the start
    date is backdated so later day counts line up with the real flock.
    """
    enforce_rules_cycle_create({"doc": doc, "age": age})
    now = now or utcnow()

    farmer = get_farmer(user_id, farmer_id) if farmer_id is not None else None
    normalized = normalize_name(name if name else (farmer.name if farmer else None))

    duplicate = db.session.query(Cycle.id).filter_by(
        user_id=user_id, name=normalized, status=CYCLE_STATUS_ACTIVE
    ).first()
    if duplicate:
        raise ConflictError(f"An active cycle named '{normalized}' already exists")

    with atomic():
        cycle = Cycle(
            user_id=user_id,
            farmer_id=farmer.id if farmer else None,
            name=normalized,
            doc=doc,
            mortality=0,
            age=0,
            intake=0.0,
            start_date=backdated_start(now, age, farm_timezone()),
            status=CYCLE_STATUS_ACTIVE,
        )
        db.session.add(cycle)
        db.session.flush()
        append_log(
            user_id=user_id,
            log_type=LOG_TYPE_NOTE,
            cycle_id=cycle.id,
            note=f"Cycle started. Initial age: {age} days.",
            occurred_at=now,
        )

    logger.info("Started cycle %s (%r, doc=%s, age=%s) for user %s", cycle.id, normalized, doc, age, user_id)

    accrue_cycle(cycle.id, force_update=True, now=now)
    db.session.refresh(cycle)
    return cycle


def add_mortality(user_id: int, cycle_id: int, amount: int, reason: str | None = None) -> Cycle:
    if amount is None or amount < 1:
        raise ValidationError("amount must be at least 1")

    def _op():
        with atomic():
            cycle = get_cycle(user_id, cycle_id)
            if not cycle.is_active:
                raise LifecycleError("cannot record mortality on an archived cycle")
            previous = cycle.mortality

            db.session.execute(
                update(Cycle)
                .where(Cycle.id == cycle.id)
                .values(
                    mortality=Cycle.mortality + amount,
                    version_id=Cycle.version_id + 1,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )
            append_log(
                user_id=user_id,
                log_type=LOG_TYPE_MORTALITY,
                cycle_id=cycle.id,
                value_change=amount,
                previous_value=previous,
                new_value=previous + amount,
                note=reason or "Routine check",
            )
        return cycle

    cycle = run_with_retry(_op)
    db.session.refresh(cycle)
    return cycle


def end_cycle(user_id: int, cycle_id: int, now: datetime | None = None) -> Cycle:
    now = now or utcnow()

    def _op():
        with atomic():
            cycle = get_cycle(user_id, cycle_id)
            if not cycle.is_active:
                raise LifecycleError("cycle is already archived")
            cycle.status = CYCLE_STATUS_ARCHIVED
            cycle.end_date = now
            db.session.flush()
            append_log(
                user_id=user_id,
                log_type=LOG_TYPE_NOTE,
                cycle_id=cycle.id,
                note=f"Cycle ended & archived at age {cycle.age} days.",
                occurred_at=now,
            )
        return cycle

    cycle = run_with_retry(_op)
    logger.info("Archived cycle %s for user %s", cycle.id, user_id)
    return cycle


def delete_cycle(user_id: int, cycle_id: int) -> None:
    with atomic():
        cycle = get_cycle(user_id, cycle_id)
        if cycle.is_active:
            raise LifecycleError("only archived cycles can be deleted")
        db.session.delete(cycle)
    logger.info("Deleted archived cycle %s for user %s", cycle_id, user_id)


def list_cycles(
    user_id: int,
    *,
    status: str = CYCLE_STATUS_ACTIVE,
    farmer_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 10,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    if status not in CYCLE_STATUS_FILTERS:
        raise ValidationError(f"status must be one of: {', '.join(sorted(CYCLE_STATUS_FILTERS))}")
    search = validate_search(search)
    page = max(1, page)
    page_size = max(1, min(page_size, 100))

    q = db.session.query(Cycle).filter(Cycle.user_id == user_id)
    if status != "all":
        q = q.filter(Cycle.status == status)
    if farmer_id is not None:
        q = q.filter(Cycle.farmer_id == farmer_id)
    if search:
        q = q.filter(Cycle.name.ilike(f"%{search}%"))

    total = q.count()

    column = CYCLE_SORT_COLUMNS.get(sort_by or "", Cycle.start_date)
    order = column.asc() if sort_order == "asc" else column.desc()
    items = q.order_by(order, Cycle.id.desc()).limit(page_size).offset((page - 1) * page_size).all()

    return {
        "items": items,
        "total": total,
        "total_pages": math.ceil(total / page_size),
    }


# ---------------------------------------------------------------------------
# Details read model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActiveCycle:
    cycle: Cycle


@dataclass(frozen=True)
class ArchivedCycle:
    cycle: Cycle


CycleRecord = Union[ActiveCycle, ArchivedCycle]


@dataclass(frozen=True)
class CycleReadModel:
    id: int
    name: str
    status: str
    farmer_id: int | None
    farmer_name: str | None
    doc: int
    mortality: int
    live_birds: int
    mortality_rate: float
    age: int
    intake: float
    start_date: str | None
    end_date: str | None
    stock_remaining: float | None

    def to_dict(self) -> dict:
        return asdict(self)


def as_record(cycle: Cycle) -> CycleRecord:
    if cycle.status == CYCLE_STATUS_ARCHIVED:
        return ArchivedCycle(cycle)
    return ActiveCycle(cycle)


def project(record: CycleRecord) -> CycleReadModel:
    """
    Common read model for live and archived cycles.

    Only an active cycle reports its pool's live stock balance; an archived
    cycle reports its end date instead.
    """
    cycle = record.cycle
    farmer: Farmer | None = cycle.farmer

    if isinstance(record, ActiveCycle):
        end_date = None
        stock_remaining = farmer.main_stock_remaining if farmer else None
    elif isinstance(record, ArchivedCycle):
        end_date = to_utc_z(cycle.end_date)
        stock_remaining = None
    else:
        raise TypeError(f"unsupported cycle record {record!r}")

    return CycleReadModel(
        id=cycle.id,
        name=cycle.name,
        status=cycle.status,
        farmer_id=cycle.farmer_id,
        farmer_name=farmer.name if farmer else None,
        doc=cycle.doc,
        mortality=cycle.mortality,
        live_birds=cycle.live_birds,
        mortality_rate=round(cycle.mortality / cycle.doc * 100, 2) if cycle.doc else 0.0,
        age=cycle.age,
        intake=cycle.intake,
        start_date=to_utc_z(cycle.start_date),
        end_date=end_date,
        stock_remaining=stock_remaining,
    )


def get_cycle_details(user_id: int, cycle_id: int) -> dict:
    """Cycle read model, its audit trail, and the other cycles of the same farmer."""
    cycle = get_cycle(user_id, cycle_id)

    siblings = db.session.query(Cycle).filter(Cycle.user_id == user_id, Cycle.id != cycle.id)
    if cycle.farmer_id is not None:
        siblings = siblings.filter(Cycle.farmer_id == cycle.farmer_id)
    else:
        siblings = siblings.filter(Cycle.name == cycle.name)
    siblings = siblings.order_by(Cycle.start_date.desc(), Cycle.id.desc()).all()

    return {
        "cycle": project(as_record(cycle)).to_dict(),
        "logs": [entry.to_dict() for entry in list_logs(cycle_id=cycle.id)],
        "history": [project(as_record(other)).to_dict() for other in siblings],
    }
