# adega/coupon/routes.py
from __future__ import annotations
from flask import request

from ..model import Coupon
from ..services.coupon_service import create_coupon_from_payload, validate_coupon
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user_id
from . import bp

@bp.post("")
@admin_required()
def create_coupon():
    """
    Body: {
      "code": str, "discount_type": "percentage" | "fixed", "discount_value": number,
      "minimum_order_value"?: number, "max_uses"?: int,
      "valid_from"?: "YYYY-MM-DD", "valid_until"?: "YYYY-MM-DD", "is_active"?: bool
    }
    """
    c = create_coupon_from_payload(request.get_json(silent=True) or {})   # ValueError -> 422
    return ok("Coupon created", c.as_api(), status=201)

@bp.get("")
@admin_required()
def list_coupons():
    q = Coupon.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Coupon.is_active == (active.lower() == "true"))
    items = q.order_by(Coupon.created_at.desc(), Coupon.code.asc()).all()
    return ok("coupons", [c.as_api() for c in items])

@bp.post("/validate")
def validate():
    """
    Body: { "code": str, "subtotal": number }
    Dry run: nothing is applied or recorded.
    """
    data = request.get_json(silent=True) or {}
    result = validate_coupon(data.get("code"), data.get("subtotal") or 0, user_id=current_user_id())
    return ok("valid" if result.valid else "invalid", result.as_api())
