# backend/poultrydash/routes/cycles.py
"""
Production cycle routes.

SECURITY: All routes require authentication and are scoped to g.current_user.

Lifecycle:
- POST /api/cycles starts a cycle and seeds its feed accrual for today.
- POST /api/cycles/<id>/end archives it (irreversible).
- DELETE /api/cycles/<id> removes an archived cycle and its logs.
"""
from flask import Blueprint, g, request

from ..models import Cycle
from ..services import cycle_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_cycle_create,
    error_status,
    require_int,
    validate_payload,
)
from ..decorators import require_auth


cycles_bp = Blueprint("cycles", __name__, url_prefix="/api/cycles")

CYCLE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "doc", "age", "farmer_id"},
    required_on_create={"doc"},
)


@cycles_bp.get("")
@require_auth
def list_cycles_route():
    try:
        page = cycle_service.list_cycles(
            g.current_user.id,
            status=request.args.get("status", "active"),
            farmer_id=require_int(request.args, "farmer_id", required=False),
            search=request.args.get("search"),
            page=require_int(request.args, "page", minimum=1, required=False) or 1,
            page_size=require_int(request.args, "page_size", minimum=1, required=False) or 10,
            sort_by=request.args.get("sort_by"),
            sort_order=request.args.get("sort_order"),
        )
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {
        "items": [c.to_dict() for c in page["items"]],
        "total": page["total"],
        "total_pages": page["total_pages"],
    }


@cycles_bp.post("")
@require_auth
def create_cycle_route():
    """
    Start a cycle.

    Body: {"doc": 1000, "age": 5, "farmer_id": 3, "name": "optional"}
    `age` is how old the flock already is today (1..34, default 1).
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Cycle,
            payload=payload,
            policy=CYCLE_CREATE_POLICY,
            partial=False,
        )
        patch.setdefault("age", 1)
        enforce_rules_cycle_create(patch)
        cycle = cycle_service.create_cycle(
            g.current_user.id,
            doc=patch["doc"],
            age=patch["age"],
            name=patch.get("name"),
            farmer_id=patch.get("farmer_id"),
        )
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {"cycle": cycle.to_dict()}, 201


@cycles_bp.get("/<int:cycle_id>")
@require_auth
def get_cycle_details_route(cycle_id: int):
    try:
        return cycle_service.get_cycle_details(g.current_user.id, cycle_id)
    except ValueError as e:
        return {"error": str(e)}, error_status(e)


@cycles_bp.post("/<int:cycle_id>/mortality")
@require_auth
def add_mortality_route(cycle_id: int):
    """Body: {"amount": <birds, >= 1>, "reason": "optional"}"""
    payload = request.get_json(silent=True) or {}

    try:
        amount = require_int(payload, "amount", minimum=1)
        cycle = cycle_service.add_mortality(
            g.current_user.id,
            cycle_id,
            amount,
            reason=(payload.get("reason") or None),
        )
    except ValueError as e:
        return {"error": str(e)}, error_status(e)

    return {"cycle": cycle.to_dict()}, 201


@cycles_bp.post("/<int:cycle_id>/end")
@require_auth
def end_cycle_route(cycle_id: int):
    try:
        cycle = cycle_service.end_cycle(g.current_user.id, cycle_id)
    except ValueError as e:
        return {"error": str(e)}, error_status(e)
    return {"cycle": cycle.to_dict()}


@cycles_bp.delete("/<int:cycle_id>")
@require_auth
def delete_cycle_route(cycle_id: int):
    try:
        cycle_service.delete_cycle(g.current_user.id, cycle_id)
    except ValueError as e:
        return {"error": str(e)}, error_status(e)
    return {"success": True}
