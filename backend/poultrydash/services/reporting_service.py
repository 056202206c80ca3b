# Overview: Service-layer operations for the dashboard summary.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from poultrydash.extensions import db
from poultrydash.feed_schedule import GRAMS_PER_BAG
from poultrydash.models import Cycle, Farmer, CYCLE_STATUS_ACTIVE


def dashboard_summary(user_id: int, *, low_stock_threshold: float | None = None) -> dict:
    """
    Headline numbers for the home dashboard.

    feed_per_bird_kg is a reporting-only efficiency figure (intake per live
    bird); the accrual engine never reads it.
    """
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("LOW_STOCK_THRESHOLD_BAGS", 5.0)

    row = db.session.query(
        func.count(Cycle.id).label("cycles"),
        func.coalesce(func.sum(Cycle.doc), 0).label("doc"),
        func.coalesce(func.sum(Cycle.mortality), 0).label("mortality"),
        func.coalesce(func.sum(Cycle.intake), 0.0).label("intake"),
    ).filter(
        Cycle.user_id == user_id,
        Cycle.status == CYCLE_STATUS_ACTIVE,
    ).one()

    live_birds = sum(
        max(0, doc - mortality)
        for doc, mortality in db.session.query(Cycle.doc, Cycle.mortality).filter(
            Cycle.user_id == user_id,
            Cycle.status == CYCLE_STATUS_ACTIVE,
        )
    )

    total_stock = db.session.query(
        func.coalesce(func.sum(Farmer.main_stock_remaining), 0.0)
    ).filter(Farmer.user_id == user_id).scalar()

    low_stock = db.session.query(Farmer).filter(
        Farmer.user_id == user_id,
        Farmer.main_stock_remaining < low_stock_threshold,
    ).order_by(Farmer.main_stock_remaining.asc(), Farmer.id.asc()).all()

    total_doc = int(row.doc or 0)
    total_mortality = int(row.mortality or 0)
    total_intake = float(row.intake or 0.0)

    return {
        "active_cycles": int(row.cycles or 0),
        "total_live_birds": live_birds,
        "total_intake_bags": round(total_intake, 3),
        "total_stock_remaining_bags": round(float(total_stock or 0.0), 3),
        "low_stock_threshold_bags": low_stock_threshold,
        "low_stock_farmers": [f.to_dict() for f in low_stock],
        "average_mortality_pct": round(total_mortality / total_doc * 100, 2) if total_doc else 0.0,
        "feed_per_bird_kg": (
            round(total_intake * GRAMS_PER_BAG / 1000 / live_birds, 3) if live_birds else 0.0
        ),
    }
