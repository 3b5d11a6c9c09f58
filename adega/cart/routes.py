# adega/cart/routes.py
from __future__ import annotations
from flask import request, current_app

from ..extensions import db
from ..model import Product
from ..services.order_service import place_order, precheck
from ..services.points_service import LoyaltyLedger
from ..services.settings_service import get_settings_cache, quote_delivery
from ..utils.api import ok, err
from ..utils.decorators import current_user_id
from ..utils.money import format_brl, round_money
from . import bp

PAYMENT_LABELS = {
    "pix": "PIX",
    "cartao": "Cartão na Entrega",
    "dinheiro": "Dinheiro na Entrega",
}

# ---- helpers ---------------------------------------------------------------

def _registry():
    return current_app.extensions["carts"]

def _cart_id():
    cart_id = (request.headers.get("X-Cart-Id") or "").strip()
    # user carts are only reachable through the token
    return None if not cart_id or cart_id.startswith("user:") else cart_id

def _resolve_session(create=True):
    """
    Logged-in shoppers keep one cart per user; anonymous ones are tracked by X-Cart-Id.
    An anonymous cart sent along with a token is merged into the user's cart.
    With ``create=False`` an unknown anonymous cart is answered with a blank, unregistered one.
    """
    uid = current_user_id()
    registry = _registry()
    cart_id = _cart_id()
    if uid:
        key = f"user:{uid}"
        return (registry.merge(cart_id, key) if cart_id else registry.get(key)), uid
    if not create:
        return registry.peek(cart_id) or registry.blank(), uid
    return registry.get(cart_id), uid

def _quote(cart):
    cfg = current_app.config
    return quote_delivery(
        get_settings_cache().get(),
        cart.get_total_price(),
        delivery_time=request.args.get("delivery_time") or (request.get_json(silent=True) or {}).get("delivery_time", "standard"),
        express_extra=cfg["EXPRESS_DELIVERY_EXTRA"],
        default_minimum=cfg["DEFAULT_MINIMUM_ORDER"],
    )

def _payload(session):
    cart, coupon = session.cart, session.coupon
    subtotal = cart.get_total_price()
    discount = coupon.recalculate_discount(subtotal)
    quote = _quote(cart)
    data = cart.as_api()
    data.update({
        "coupon": coupon.as_api(),
        "discount": float(discount),
        "delivery": quote.as_api(),
        "total": float(round_money(subtotal + quote.delivery_fee - discount)),
        "notices": cart.notifier.drain(),
    })
    return data

def _respond(session, msg, status=200, uid=None):
    resp = ok(msg, _payload(session), status=status)
    if not uid and session.key:
        resp.headers["X-Cart-Id"] = session.key      # <- anonymous clients send this back
    return resp

# ---- endpoints -------------------------------------------------------------

@bp.get("")
def get_cart():
    session, uid = _resolve_session(create=False)
    return _respond(session, "cart", uid=uid)

@bp.post("/items")
def add_item():
    """
    Body: { "product_id": str }
    Adds one unit; repeated adds of the same product bump its quantity.
    """
    session, uid = _resolve_session()
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    if not product_id:
        return err("product_id is required", 422)

    product = db.session.get(Product, str(product_id))
    if not product or product.is_active is False:
        return err("product not found or inactive", 404)

    with session.lock:
        session.cart.add_item(product)
    return _respond(session, "item added", status=201, uid=uid)

@bp.put("/items/<product_id>")
@bp.patch("/items/<product_id>")
def update_item(product_id: str):
    """
    Body: { "quantity": int }
    quantity <= 0 removes the line.
    """
    session, uid = _resolve_session(create=False)
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return err("quantity is required", 422)
    try:
        qty = int(data.get("quantity") or 0)
    except (TypeError, ValueError):
        return err("quantity must be an integer", 422)

    with session.lock:
        session.cart.update_quantity(product_id, qty)
    return _respond(session, "item updated", uid=uid)

@bp.delete("/items/<product_id>")
def remove_item(product_id: str):
    session, uid = _resolve_session(create=False)
    with session.lock:
        session.cart.remove_item(product_id)
    return _respond(session, "item removed", uid=uid)

@bp.delete("/items")
def clear_cart_items():
    session, uid = _resolve_session(create=False)
    with session.lock:
        session.cart.clear_cart()
    return _respond(session, "all items removed", uid=uid)

@bp.post("/coupon")
def apply_coupon():
    """Body: { "code": "BEMVINDO10" }"""
    session, uid = _resolve_session()
    data = request.get_json(silent=True) or {}
    with session.lock:
        result = session.coupon.apply_coupon(data.get("code"), session.cart.get_total_price(), user_id=uid)
    if not result.valid:
        session.cart.notifier.error("Cupom inválido", result.error)
        return err(result.error, 422, data={"notices": session.cart.notifier.drain()})

    c = result.coupon
    desc = f"{float(c.discount_value):g}% de desconto" if c.discount_type == "percentage" else "desconto aplicado"
    session.cart.notifier.notify("Cupom aplicado! 🎉", desc)
    return _respond(session, "coupon applied", uid=uid)

@bp.delete("/coupon")
def remove_coupon():
    session, uid = _resolve_session(create=False)
    with session.lock:
        session.coupon.remove_coupon()
    session.cart.notifier.notify("Cupom removido")
    return _respond(session, "coupon removed", uid=uid)

@bp.post("/checkout")
def checkout():
    """
    Body: {
      "payment_method": "pix" | "cartao" | "dinheiro",
      "delivery_time": "standard" | "express",
      "address": { "address": str, "neighborhood": str, ... },
      "notes": str
    }
    """
    session, uid = _resolve_session()
    cart = session.cart

    failed = precheck(cart, uid)
    if failed:
        return err(failed.error, 401 if not uid else 422, data=failed.as_api())

    payload = request.get_json(silent=True) or {}
    address = payload.get("address") or {}
    missing = []
    if not (address.get("address") or "").strip():
        missing.append("Endereço")
    if not (address.get("neighborhood") or "").strip():
        missing.append("Bairro")
    if missing:
        return err(f"Endereço incompleto. Preencha: {', '.join(missing)}", 422)

    quote = _quote(cart)
    if not quote.minimum_met:
        return err(f"Pedido mínimo de {format_brl(quote.minimum_order_value)} não atingido", 422)
    method = (payload.get("payment_method") or "pix").lower()

    with session.lock:
        ledger = LoyaltyLedger(uid, notifier=cart.notifier)
        ledger.load_points()
        result = place_order(
            cart,
            uid,
            delivery_fee=quote.delivery_fee,
            payment_method=PAYMENT_LABELS.get(method, "PIX"),
            address=address,
            notes=payload.get("notes") or "",
            coupon=session.coupon,
            ledger=ledger,
        )

    if not result.success:
        cart.notifier.error("Erro no pedido", result.error)
        return err(result.error, 422, data={**result.as_api(), "notices": cart.notifier.drain()})

    notices = cart.notifier.drain()
    _registry().discard(session.key)
    resp = ok("order created", {
        **result.as_api(),
        "points": ledger.as_api(),
        "notices": notices,
    }, status=201)
    resp.headers["X-Order-Id"] = result.order_id
    return resp
