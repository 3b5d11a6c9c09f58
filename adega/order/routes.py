# adega/order/routes.py
from flask import request
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..model import Order
from ..services.order_service import change_status, STATUSES
from ..utils.api import ok, err
from ..utils.decorators import admin_required, current_user_id
from . import bp

def _paginate(q):
    page = max(request.args.get("page", 1, type=int), 1)
    per = min(max(request.args.get("per_page", 20, type=int), 1), 100)
    paged = q.order_by(Order.created_at.desc()).paginate(page=page, per_page=per, error_out=False)
    return {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api(with_items=False) for o in paged.items],
    }

@bp.get("")
@jwt_required()
def my_orders():
    """Orders of the caller, newest first. Query: status, page, per_page"""
    q = Order.query.filter(Order.user_id == current_user_id())
    status = request.args.get("status")
    if status:
        q = q.filter(Order.status == status)
    return ok("orders", _paginate(q))

@bp.get("/<order_id>")
@jwt_required()
def get_order(order_id: str):
    o = db.session.get(Order, order_id)
    if not o or o.user_id != current_user_id():
        return err("order not found", 404)
    return ok("order", o.as_api())

@bp.get("/admin")
@admin_required()
def all_orders():
    """
    Query params:
      - status=pending|confirmed|preparing|out_for_delivery|delivering|delivered|cancelled
      - start=YYYY-MM-DD, end=YYYY-MM-DD (inclusive)
      - page, per_page
    """
    q = Order.query
    status = request.args.get("status")
    start = request.args.get("start")
    end = request.args.get("end")
    if status:
        q = q.filter(Order.status == status)

    from datetime import datetime, timedelta
    if start:
        q = q.filter(Order.created_at >= datetime.fromisoformat(start))
    if end:
        # make end inclusive for the whole day
        q = q.filter(Order.created_at < datetime.fromisoformat(end) + timedelta(days=1))
    return ok("orders", _paginate(q))

@bp.patch("/<order_id>/status")
@admin_required()
def update_status(order_id: str):
    """Body: { "status": str }"""
    o = db.session.get(Order, order_id)
    if not o:
        return err("order not found", 404)
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return err(f"status is required ({', '.join(STATUSES)})", 422)
    change_status(o, data["status"])        # ValueError -> 422
    return ok("order updated", o.as_api())
