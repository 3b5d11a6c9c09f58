# adega/services/order_service.py
from __future__ import annotations
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..model import Order, OrderItem
from ..utils.money import D, ZERO, round_money, format_brl
from .coupon_service import AppliedCoupon, validate_coupon, record_coupon_use, has_used_coupon, ERR_ALREADY_USED
from .points_service import LoyaltyLedger, calculate_points_from_purchase

logger = logging.getLogger(__name__)

ERR_LOGIN = "Usuário deve estar logado para fazer pedidos"
ERR_EMPTY_CART = "Carrinho está vazio"

PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERING = "delivering"
DELIVERED = "delivered"
CANCELLED = "cancelled"

# staff-driven; cancellation is allowed from anything not yet delivered
TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {PREPARING, CANCELLED},
    PREPARING: {OUT_FOR_DELIVERY, DELIVERING, CANCELLED},
    OUT_FOR_DELIVERY: {DELIVERED, CANCELLED},
    DELIVERING: {DELIVERED, CANCELLED},
    DELIVERED: set(),
    CANCELLED: set(),
}
STATUSES = tuple(TRANSITIONS)


@dataclass
class OrderResult:
    success: bool
    order_id: str | None = None
    error: str | None = None
    points_earned: int = 0

    def as_api(self):
        return {
            "success": self.success,
            "order_id": self.order_id,
            "error": self.error,
            "points_earned": self.points_earned,
        }


def order_total(subtotal, discount, delivery_fee):
    """subtotal - discount + delivery fee; the discount never eats into the delivery fee."""
    goods = max(ZERO, D(subtotal) - D(discount))
    return round_money(goods + D(delivery_fee))


def precheck(cart, user_id) -> OrderResult | None:
    """Local preconditions; no database access."""
    if not user_id:
        return OrderResult(False, error=ERR_LOGIN)
    if not cart.items:
        return OrderResult(False, error=ERR_EMPTY_CART)
    return None


def place_order(cart, user_id, *, delivery_fee=0, payment_method=None, address=None, notes=None,
                coupon: AppliedCoupon | None = None, ledger: LoyaltyLedger | None = None,
                now=None) -> OrderResult:
    """
    Submit the cart as an order.

    Order header, items and (when a coupon is applied) the coupon redemption are
    written in one transaction. Loyalty points are awarded afterwards and their
    failure never fails the order. The cart and coupon are cleared only on success.
    """
    failed = precheck(cart, user_id)
    if failed:
        return failed

    lines = list(cart.items)
    subtotal = cart.get_total_price()
    discount = ZERO
    coupon_id = None

    try:
        if coupon is not None and coupon.is_applied:
            # applied coupons are re-checked against the cart as it is now
            check = validate_coupon(coupon.code, subtotal, user_id=user_id, now=now)
            if not check.valid:
                return OrderResult(False, error=check.error)
            discount = check.discount
            coupon_id = check.coupon.id

        total = order_total(subtotal, discount, delivery_fee)

        order = Order(
            user_id=user_id,
            status=PENDING,
            payment_method=payment_method,
            shipping_address=address,
            notes=notes,
            subtotal=round_money(subtotal),
            delivery_fee=round_money(D(delivery_fee)),
            discount_amount=round_money(discount),
            total=total,
            coupon_id=coupon_id,
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                product_name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                total_price=round_money(line.unit_price * line.quantity),
            ))
        db.session.flush()

        if coupon_id:
            record_coupon_use(coupon_id, user_id, order.id, commit=False)

        db.session.commit()
        order_id = order.id
    except IntegrityError:
        db.session.rollback()
        if coupon_id and has_used_coupon(coupon_id, user_id):
            # lost a race with another redemption of the same coupon by this user
            return OrderResult(False, error=ERR_ALREADY_USED)
        logger.exception("order insert failed for user %s", user_id)
        return OrderResult(False, error="Erro ao criar pedido")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("order insert failed for user %s", user_id)
        return OrderResult(False, error=str(getattr(e, "orig", None) or e))

    logger.info("order %s placed by %s: total=%s discount=%s items=%d",
                order_id, user_id, total, discount, len(lines))

    points = calculate_points_from_purchase(total)
    if ledger is None:
        ledger = LoyaltyLedger(user_id, notifier=cart.notifier)
    awarded = ledger.add_points(
        points,
        "compra",
        description=f"Compra #{order_id[:8]} - {points} pontos",
        order_id=order_id,
    )
    if not awarded:
        logger.warning("order %s created but %s points were not awarded", order_id, points)

    cart.clear_cart()
    if coupon is not None:
        coupon.remove_coupon()

    cart.notifier.notify("Pedido realizado! 🎉", f"#{order_id[:8]} - {format_brl(total)}")
    return OrderResult(True, order_id=order_id, points_earned=points if awarded else 0)


def change_status(order: Order, new_status: str) -> Order:
    """Raises ValueError for unknown statuses or transitions the workflow forbids."""
    new_status = (new_status or "").strip().lower()
    if new_status not in TRANSITIONS:
        raise ValueError(f"unknown status '{new_status}'")
    if new_status == order.status:
        return order
    if new_status not in TRANSITIONS.get(order.status, set()):
        raise ValueError(f"cannot change order from '{order.status}' to '{new_status}'")
    order.status = new_status
    db.session.commit()
    logger.info("order %s -> %s", order.id, new_status)
    return order
