# Overview: Service-layer operations for farmers and their feed stock pools.

from __future__ import annotations

import logging
import math

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Farmer
from ..models.logs import LOG_TYPE_STOCK_ADD
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    normalize_name,
    validate_search,
)
from .concurrency import atomic, run_with_retry
from .log_service import append_log, list_logs

logger = logging.getLogger(__name__)

FARMER_SORT_COLUMNS = {
    "name": Farmer.name,
    "remaining": Farmer.main_stock_remaining,
    "created_at": Farmer.created_at,
}


def get_farmer(user_id: int, farmer_id: int) -> Farmer:
    farmer = db.session.query(Farmer).filter_by(id=farmer_id, user_id=user_id).first()
    if farmer is None:
        raise NotFoundError("farmer not found")
    return farmer


def create_farmer(user_id: int, name: str) -> Farmer:
    normalized = normalize_name(name)

    existing = db.session.query(Farmer).filter_by(user_id=user_id, name=normalized).first()
    if existing:
        raise ConflictError(f"A farmer named '{normalized}' already exists")

    farmer = Farmer(
        user_id=user_id,
        name=normalized,
        main_stock_input=0.0,
        main_stock_remaining=0.0,
    )
    try:
        with atomic():
            db.session.add(farmer)
    except IntegrityError:
        raise ConflictError(f"A farmer named '{normalized}' already exists")

    logger.info("Created farmer %s (%r) for user %s", farmer.id, normalized, user_id)
    return farmer


def add_stock(user_id: int, farmer_id: int, amount: float, note: str | None = None) -> Farmer:
    """
    Add bags to a farmer's stock pool.

    Both input and remaining are increased with a relative UPDATE so a
    concurrent accrual decrement is never overwritten.
    """
    if amount is None or not math.isfinite(amount) or amount < 1:
        raise ValidationError("amount must be at least 1")

    def _op():
        with atomic():
            farmer = get_farmer(user_id, farmer_id)
            previous_remaining = farmer.main_stock_remaining

            db.session.execute(
                update(Farmer)
                .where(Farmer.id == farmer.id)
                .values(
                    main_stock_input=Farmer.main_stock_input + amount,
                    main_stock_remaining=Farmer.main_stock_remaining + amount,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )
            append_log(
                user_id=user_id,
                log_type=LOG_TYPE_STOCK_ADD,
                farmer_id=farmer.id,
                value_change=amount,
                previous_value=previous_remaining,
                new_value=previous_remaining + amount,
                note=note or "Stock added",
            )
        return farmer

    farmer = run_with_retry(_op)
    db.session.refresh(farmer)
    logger.info("Added %.2f bags to farmer %s", amount, farmer.id)
    return farmer


def list_farmers(
    user_id: int,
    *,
    search: str | None = None,
    page: int = 1,
    page_size: int = 10,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    search = validate_search(search)
    page = max(1, page)
    page_size = max(1, min(page_size, 100))

    q = db.session.query(Farmer).filter(Farmer.user_id == user_id)
    if search:
        q = q.filter(Farmer.name.ilike(f"%{search}%"))

    total = q.count()

    column = FARMER_SORT_COLUMNS.get(sort_by or "", Farmer.created_at)
    order = column.asc() if sort_order == "asc" else column.desc()
    items = q.order_by(order, Farmer.id.desc()).limit(page_size).offset((page - 1) * page_size).all()

    return {
        "items": items,
        "total": total,
        "total_pages": math.ceil(total / page_size),
    }


def list_farmer_logs(user_id: int, farmer_id: int, limit: int = 200) -> list:
    """Stock pool audit trail, newest first."""
    farmer = get_farmer(user_id, farmer_id)
    return list_logs(farmer_id=farmer.id, limit=min(limit, 1000))
