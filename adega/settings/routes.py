# adega/settings/routes.py
from flask import request, current_app

from ..services.settings_service import get_settings_cache, update_store_settings, quote_delivery
from ..utils.api import ok, err
from ..utils.decorators import admin_required
from . import bp

@bp.get("")
def get_settings():
    settings = get_settings_cache().get()
    if settings is None:
        return err("store settings not configured", 404)
    return ok("store settings", settings)

@bp.get("/delivery-quote")
def delivery_quote():
    """Query: subtotal=<number>, delivery_time=standard|express"""
    subtotal = request.args.get("subtotal", 0, type=float)
    q = quote_delivery(
        get_settings_cache().get(),
        subtotal,
        delivery_time=request.args.get("delivery_time", "standard"),
        express_extra=current_app.config["EXPRESS_DELIVERY_EXTRA"],
        default_minimum=current_app.config["DEFAULT_MINIMUM_ORDER"],
    )
    return ok("delivery quote", q.as_api())

@bp.put("")
@bp.patch("")
@admin_required()
def update_settings():
    row = update_store_settings(request.get_json(silent=True) or {})   # ValueError -> 422
    return ok("store settings updated", row.as_api())

@bp.post("/refresh")
@admin_required()
def refresh_settings():
    return ok("store settings refreshed", get_settings_cache().refresh())
