# backend/poultrydash/routes/feed.py
"""
Feed schedule and sync routes.

- POST /api/feed/sync: manual "Sync" for the authenticated user's active cycles.
- GET|POST /api/cron/update-feed: scheduled trigger, guarded by CRON_SECRET.
  Runs for every user, or for one user with ?user_id=N.

Both entry points are safe to call repeatedly; cycles already accrued for
today are skipped.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_cron_secret
from ..feed_schedule import GRAMS_PER_BAG, PLATEAU_DAY, schedule_rows
from ..services.sync_service import sync_all
from ..validation import ValidationError, require_int


feed_bp = Blueprint("feed", __name__)


@feed_bp.get("/api/feed/schedule")
def feed_schedule_route():
    return {
        "grams_per_bag": GRAMS_PER_BAG,
        "plateau_day": PLATEAU_DAY,
        "days": schedule_rows(),
    }


@feed_bp.post("/api/feed/sync")
@require_auth
def sync_feed_route():
    report = sync_all(user_id=g.current_user.id)
    return report.to_dict()


@feed_bp.route("/api/cron/update-feed", methods=["GET", "POST"])
@require_cron_secret
def cron_update_feed_route():
    try:
        user_id = require_int(request.args, "user_id", minimum=1, required=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    report = sync_all(user_id=user_id)
    return report.to_dict()
