# Overview: Batch feed sync; runs the accrual engine for every active cycle in a scope.

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Cycle, CYCLE_STATUS_ACTIVE
from ..time_utils import utcnow
from .accrual_service import AccrualResult, AccrualSkipped, accrue_cycle
"""
Batch Sync Semantics

- Triggered by the daily scheduled job (all users) or a manual "Sync" action
  (one user). Both are safe to repeat: the accrual engine gates on age.
- Every active cycle is accrued independently and concurrently. Each worker
  thread gets its own app context and therefore its own scoped session.
- Skipped cycles are counted but are not failures and are not listed.
- A cycle that raises or does not finish before the batch timeout becomes a
  failure entry; it never fails the batch.
- A timeout is "still running when the report was taken", not a rollback.
  Workers already running are not interrupted, so a timed-out cycle may
  still commit its accrual afterwards; the next sync then skips it.
- The caller's session is rolled back, never committed, before workers start.
"""

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timed out (still running when the report was taken)"


@dataclass(frozen=True)
class CycleSyncFailure:
    cycle_id: int
    error: str

    def to_dict(self) -> dict:
        return {"cycle_id": self.cycle_id, "error": self.error}


@dataclass
class SyncReport:
    user_id: int | None
    results: list[AccrualResult] = field(default_factory=list)
    skipped_count: int = 0
    failures: list[CycleSyncFailure] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.results)

    @property
    def mode(self) -> str:
        if self.user_id is None:
            return "global"
        return f"user:{self.user_id}"

    def to_dict(self) -> dict:
        return {
            "success": True,
            "mode": self.mode,
            "updated_count": self.updated_count,
            "skipped_count": self.skipped_count,
            "updates": [r.to_dict() for r in self.results],
            "failures": [f.to_dict() for f in self.failures],
        }


def active_cycle_ids(user_id: int | None = None) -> list[int]:
    q = db.session.query(Cycle.id).filter(Cycle.status == CYCLE_STATUS_ACTIVE)
    if user_id is not None:
        q = q.filter(Cycle.user_id == user_id)
    return [row.id for row in q.order_by(Cycle.id).all()]


def _accrue_in_context(app, cycle_id: int, now: datetime, tz_name: str | None):
    with app.app_context():
        try:
            return accrue_cycle(cycle_id, now=now, tz_name=tz_name)
        finally:
            db.session.remove()


def sync_all(
    *,
    user_id: int | None = None,
    now: datetime | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> SyncReport:
    """
    Accrue every active cycle for `user_id` (or every user when None).

    Must be called inside an app context.
    """
    app = current_app._get_current_object()
    now = now or utcnow()
    max_workers = max_workers or app.config.get("FEED_SYNC_MAX_WORKERS", 8)
    timeout = timeout if timeout is not None else app.config.get("FEED_SYNC_TIMEOUT_SECONDS")
    tz_name = app.config.get("FARM_TIMEZONE")

    cycle_ids = active_cycle_ids(user_id)
    # End the caller's read transaction; anything it left pending is discarded, not committed
    db.session.rollback()

    report = SyncReport(user_id=user_id)
    if not cycle_ids:
        logger.info("Feed sync (%s): no active cycles", report.mode)
        return report

    executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(cycle_ids))))
    try:
        futures = {
            executor.submit(_accrue_in_context, app, cycle_id, now, tz_name): cycle_id
            for cycle_id in cycle_ids
        }
        done, not_done = wait(futures, timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for future in sorted(done, key=lambda f: futures[f]):
        cycle_id = futures[future]
        exc = future.exception()
        if exc is not None:
            logger.error("Feed sync failed for cycle %s", cycle_id, exc_info=exc)
            report.failures.append(CycleSyncFailure(cycle_id, str(exc) or type(exc).__name__))
            continue
        outcome = future.result()
        if isinstance(outcome, AccrualSkipped):
            report.skipped_count += 1
        else:
            report.results.append(outcome)

    for future in sorted(not_done, key=lambda f: futures[f]):
        cycle_id = futures[future]
        logger.warning("Feed sync for cycle %s did not finish within %ss", cycle_id, timeout)
        report.failures.append(CycleSyncFailure(cycle_id, TIMEOUT_ERROR))

    logger.info(
        "Feed sync (%s): %d updated, %d skipped, %d failed",
        report.mode, report.updated_count, report.skipped_count, len(report.failures),
    )
    return report
