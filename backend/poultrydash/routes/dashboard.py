# backend/poultrydash/routes/dashboard.py
from flask import Blueprint, g

from ..decorators import require_auth
from ..services.reporting_service import dashboard_summary


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/summary")
@require_auth
def dashboard_summary_route():
    return dashboard_summary(g.current_user.id)
