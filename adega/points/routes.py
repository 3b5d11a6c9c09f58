# adega/points/routes.py
from flask import request
from flask_jwt_extended import jwt_required

from ..services.points_service import LoyaltyLedger, points_history
from ..utils.api import ok
from ..utils.decorators import current_user_id
from . import bp

@bp.get("")
@jwt_required()
def balance():
    ledger = LoyaltyLedger(current_user_id())
    ledger.load_points()
    return ok("points", ledger.as_api())

@bp.get("/history")
@jwt_required()
def history():
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    rows = points_history(current_user_id(), limit=limit)
    return ok("points history", [r.as_api() for r in rows])
