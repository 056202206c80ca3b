# Overview: Feed accrual engine; advances a cycle's age and cumulative intake to match elapsed days.

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from flask import current_app, has_app_context
from sqlalchemy import func, select, update

from ..extensions import db
from ..feed_schedule import cumulative_feed_for_day, grams_to_bags
from ..models import Cycle, Farmer
from ..models.logs import LOG_TYPE_FEED, LOG_TYPE_NOTE
from ..time_utils import current_age_days, utcnow
from ..validation import NotFoundError
from .concurrency import atomic, lock_for_update, run_with_retry
from .log_service import append_log
"""
Feed Accrual Invariants (authoritative)

- Cycle.age never decreases and only this module advances it.
- Cycle.intake is the cumulative schedule total for Cycle.age, scaled by live
  birds at the time of the run. Each run overwrites it with a freshly computed
  total; it is never incremented. Skipped syncs therefore self-heal: a run
  after three missed days books all three days at once.
- A run is a no-op unless a new calendar day has started since the last run
  (or force_update is set, used once at cycle creation).
- A negative delta (mortality corrected after intake was booked) is clamped
  to zero: intake keeps its value and the stock pool is never credited.
- Stock pools are decremented with a relative UPDATE executed by the database,
  so concurrent runs for sibling cycles cannot lose updates. Overdraft is
  allowed and shows as a negative balance.
- Cycle update, stock decrement and audit log row commit or roll back together.
"""

logger = logging.getLogger(__name__)

# Deltas at or below this many bags are float noise; nothing is logged or deducted
EPSILON_BAGS = 0.001

SKIP_UP_TO_DATE = "up_to_date"
SKIP_ARCHIVED = "archived"
SKIP_STOCK_POOL_MISSING = "stock_pool_missing"


@dataclass(frozen=True)
class AccrualResult:
    cycle_id: int
    name: str
    age: int
    previous_age: int
    added_bags: float
    intake: float
    stock_remaining: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AccrualSkipped:
    """A normal outcome, not an error: there was nothing to accrue."""
    cycle_id: int
    reason: str


def farm_timezone() -> str | None:
    if has_app_context():
        return current_app.config.get("FARM_TIMEZONE")
    return None


def target_intake_bags(age: int, live_birds: int) -> float:
    """Cumulative bags a flock of `live_birds` has eaten by the end of day `age`."""
    return grams_to_bags(cumulative_feed_for_day(age) * max(0, live_birds))


def accrue_cycle(
    cycle_id: int,
    *,
    force_update: bool = False,
    now: datetime | None = None,
    session=None,
    tz_name: str | None = None,
) -> AccrualResult | AccrualSkipped:
    """
    Bring one cycle's age and intake up to date.

    Raises NotFoundError if the cycle does not exist. A missing parent stock
    pool is reported as AccrualSkipped so batch runs carry on.
    """
    session = session or db.session
    now = now or utcnow()
    tz_name = tz_name if tz_name is not None else farm_timezone()

    def _op():
        with atomic(session):
            query = session.query(Cycle).filter(Cycle.id == cycle_id).populate_existing()
            cycle = lock_for_update(query).first()
            if cycle is None:
                raise NotFoundError(f"cycle {cycle_id} not found")

            if not cycle.is_active:
                return AccrualSkipped(cycle_id, SKIP_ARCHIVED)

            new_age = current_age_days(cycle.start_date, now, tz_name)
            if not force_update and new_age <= cycle.age:
                logger.debug("Cycle %s already accrued through day %s", cycle.id, cycle.age)
                return AccrualSkipped(cycle_id, SKIP_UP_TO_DATE)
            new_age = max(new_age, cycle.age)

            farmer = None
            if cycle.farmer_id is not None:
                farmer = session.get(Farmer, cycle.farmer_id)
                if farmer is None:
                    logger.warning(
                        "Cycle %s references missing stock pool %s; skipping",
                        cycle.id, cycle.farmer_id,
                    )
                    return AccrualSkipped(cycle_id, SKIP_STOCK_POOL_MISSING)

            previous_age = cycle.age
            previous_intake = float(cycle.intake or 0.0)
            target = target_intake_bags(new_age, cycle.live_birds)

            consumed = target - previous_intake
            if consumed < 0:
                logger.debug(
                    "Cycle %s target intake %.3f below booked %.3f; keeping booked value",
                    cycle.id, target, previous_intake,
                )
                consumed = 0.0
                target = previous_intake

            cycle.intake = target
            cycle.age = new_age
            session.flush()

            stock_remaining = None
            if consumed > EPSILON_BAGS:
                note = f"Daily consumption: {consumed:.2f} bags (age {new_age})"
                if farmer is not None:
                    session.execute(
                        update(Farmer)
                        .where(Farmer.id == farmer.id)
                        .values(
                            main_stock_remaining=Farmer.main_stock_remaining - consumed,
                            updated_at=func.now(),
                        )
                        .execution_options(synchronize_session=False)
                    )
                    stock_remaining = session.execute(
                        select(Farmer.main_stock_remaining).where(Farmer.id == farmer.id)
                    ).scalar_one()
                    if stock_remaining < 0:
                        logger.warning(
                            "Stock pool %s overdrawn: %.2f bags remaining", farmer.id, stock_remaining
                        )
                    log_type = LOG_TYPE_FEED
                else:
                    # No pool to draw from; record consumption only
                    log_type = LOG_TYPE_NOTE

                append_log(
                    user_id=cycle.user_id,
                    log_type=log_type,
                    cycle_id=cycle.id,
                    value_change=consumed,
                    previous_value=previous_intake,
                    new_value=target,
                    note=note,
                    occurred_at=now,
                    session=session,
                )
            elif farmer is not None:
                stock_remaining = farmer.main_stock_remaining

            result = AccrualResult(
                cycle_id=cycle.id,
                name=cycle.name,
                age=new_age,
                previous_age=previous_age,
                added_bags=consumed,
                intake=target,
                stock_remaining=stock_remaining,
            )

        logger.info(
            "Accrued cycle %s: day %s -> %s, +%.3f bags",
            result.cycle_id, result.previous_age, result.age, result.added_bags,
        )
        return result

    return run_with_retry(_op, attempts=5, session=session)
