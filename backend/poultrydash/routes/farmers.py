# backend/poultrydash/routes/farmers.py
"""
Farmer (stock pool) routes.

SECURITY: All routes require authentication and are scoped to g.current_user.
"""
from flask import Blueprint, g, request

from ..models import Farmer
from ..services import farmer_service
from ..validation import (
    ModelValidationPolicy,
    error_status,
    require_int,
    require_number,
    validate_payload,
)
from ..decorators import require_auth


farmers_bp = Blueprint("farmers", __name__, url_prefix="/api/farmers")

FARMER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name"},
    required_on_create={"name"},
)


def _page_args() -> dict:
    return {
        "search": request.args.get("search"),
        "page": require_int(request.args, "page", minimum=1, required=False) or 1,
        "page_size": require_int(request.args, "page_size", minimum=1, required=False) or 10,
        "sort_by": request.args.get("sort_by"),
        "sort_order": request.args.get("sort_order"),
    }


@farmers_bp.get("")
@require_auth
def list_farmers_route():
    try:
        page = farmer_service.list_farmers(g.current_user.id, **_page_args())
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {
        "items": [f.to_dict() for f in page["items"]],
        "total": page["total"],
        "total_pages": page["total_pages"],
    }


@farmers_bp.post("")
@require_auth
def create_farmer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Farmer,
            payload=payload,
            policy=FARMER_CREATE_POLICY,
            partial=False,
        )
        farmer = farmer_service.create_farmer(g.current_user.id, patch["name"])
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {"farmer": farmer.to_dict()}, 201


@farmers_bp.get("/<int:farmer_id>")
@require_auth
def get_farmer_route(farmer_id: int):
    try:
        farmer = farmer_service.get_farmer(g.current_user.id, farmer_id)
    except ValueError as e:
        return {"error": str(e)}, error_status(e)
    return {"farmer": farmer.to_dict()}


@farmers_bp.post("/<int:farmer_id>/stock")
@require_auth
def add_stock_route(farmer_id: int):
    """
    Add bags to the farmer's main stock.

    Body: {"amount": <bags, >= 1>, "note": "optional"}
    """
    payload = request.get_json(silent=True) or {}

    try:
        amount = require_number(payload, "amount", minimum=1)
        farmer = farmer_service.add_stock(
            g.current_user.id,
            farmer_id,
            amount,
            note=(payload.get("note") or None),
        )
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {"farmer": farmer.to_dict()}, 201


@farmers_bp.get("/<int:farmer_id>/logs")
@require_auth
def farmer_logs_route(farmer_id: int):
    try:
        limit = require_int(request.args, "limit", minimum=1, required=False) or 200
        entries = farmer_service.list_farmer_logs(g.current_user.id, farmer_id, limit=limit)
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {"logs": [entry.to_dict() for entry in entries]}
