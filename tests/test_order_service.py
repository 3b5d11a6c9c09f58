"""Tests for order submission and status workflow."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from adega.cart.store import CartStore
from adega.extensions import db
from adega.model import Coupon, CouponUse, Order, OrderItem, PointsHistory
from adega.services import order_service, points_service
from adega.services.coupon_service import AppliedCoupon
from adega.services.order_service import change_status, order_total, place_order
from adega.services.points_service import LoyaltyLedger

NOW = datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def cart(products):
    """Product A x2 (3.99) and product B x1 (7.49): subtotal 15.47."""
    a, b = products
    store = CartStore()
    store.add_item(a)
    store.add_item(a)
    store.add_item(b)
    store.notifier.drain()
    return store


class _NoDatabase:
    def __getattr__(self, name):
        raise AssertionError(f"database touched: db.{name}")


class TestPreconditions:
    def test_empty_cart(self, user, monkeypatch) -> None:
        monkeypatch.setattr(order_service, "db", _NoDatabase())
        result = place_order(CartStore(), user.id, delivery_fee=5)
        assert result.success is False
        assert result.error == "Carrinho está vazio"

    def test_unauthenticated(self, cart, monkeypatch) -> None:
        monkeypatch.setattr(order_service, "db", _NoDatabase())
        result = place_order(cart, None, delivery_fee=5)
        assert result.success is False
        assert result.error == "Usuário deve estar logado para fazer pedidos"
        assert cart.get_total_items() == 3


class TestPlaceOrder:
    def test_success(self, cart, user) -> None:
        result = place_order(cart, user.id, delivery_fee=Decimal("5.00"), payment_method="PIX",
                             address={"address": "Rua A, 1", "neighborhood": "Centro"}, notes="sem gelo")
        assert result.success
        order = db.session.get(Order, result.order_id)
        assert order.status == "pending"
        assert order.total == Decimal("20.47")
        assert order.subtotal == Decimal("15.47")
        assert order.discount_amount == 0
        assert order.shipping_address["neighborhood"] == "Centro"

        items = {i.product_name: i for i in OrderItem.query.filter_by(order_id=order.id)}
        assert items["Brahma Lata 350ml"].quantity == 2
        assert items["Brahma Lata 350ml"].unit_price == Decimal("3.99")
        assert items["Brahma Lata 350ml"].total_price == Decimal("7.98")
        assert items["Heineken Long Neck"].total_price == Decimal("7.49")

        assert result.points_earned == 204
        history = PointsHistory.query.filter_by(user_id=user.id).one()
        assert history.description == f"Compra #{order.id[:8]} - 204 pontos"
        assert cart.items == ()

    def test_unit_price_is_a_snapshot(self, cart, user, products) -> None:
        result = place_order(cart, user.id)
        products[0].price = Decimal("99.00")
        db.session.commit()
        item = OrderItem.query.filter_by(order_id=result.order_id, product_id=products[0].id).one()
        assert item.unit_price == Decimal("3.99")

    def test_with_coupon(self, cart, user, make_coupon) -> None:
        coupon = make_coupon(max_uses=10)
        applied = AppliedCoupon()
        assert applied.apply_coupon("DESC20", cart.get_total_price(), user_id=user.id, now=NOW).valid

        result = place_order(cart, user.id, delivery_fee=0, coupon=applied, now=NOW)

        assert result.success
        order = db.session.get(Order, result.order_id)
        assert order.discount_amount == Decimal("3.09")
        assert order.total == Decimal("12.38")
        assert order.coupon_id == coupon.id
        db.session.refresh(coupon)
        assert coupon.current_uses == 1
        use = CouponUse.query.filter_by(coupon_id=coupon.id, user_id=user.id).one()
        assert use.order_id == order.id
        assert not applied.is_applied

    def test_coupon_rechecked_at_submission(self, cart, user, make_coupon) -> None:
        make_coupon(minimum_order_value=Decimal("15.00"))
        applied = AppliedCoupon()
        assert applied.apply_coupon("DESC20", cart.get_total_price(), now=NOW).valid
        cart.update_quantity(products_a_id(cart), 1)   # subtotal drops to 11.48

        result = place_order(cart, user.id, coupon=applied, now=NOW)

        assert not result.success
        assert result.error == "Pedido mínimo de R$ 15,00 para este cupom"
        assert Order.query.count() == 0
        assert cart.get_total_items() == 2

    def test_second_redemption_rejected(self, products, user, make_coupon) -> None:
        make_coupon()
        for attempt in range(2):
            store = CartStore()
            store.add_item(products[1])
            applied = AppliedCoupon()
            applied.apply_coupon("DESC20", store.get_total_price(), now=NOW)
            result = place_order(store, user.id, coupon=applied, now=NOW)
            if attempt == 0:
                assert result.success
            else:
                assert result.error == "Você já usou este cupom"
        assert Order.query.count() == 1
        assert db.session.query(Coupon.current_uses).scalar() == 1

    def test_concurrent_redemption_reported_as_already_used(self, cart, user, make_coupon, monkeypatch) -> None:
        coupon = make_coupon()
        applied = AppliedCoupon()
        assert applied.apply_coupon("DESC20", cart.get_total_price(), user_id=user.id, now=NOW).valid
        real_validate = order_service.validate_coupon

        def validate_then_redeem_elsewhere(*a, **kw):
            check = real_validate(*a, **kw)
            db.session.add(CouponUse(coupon_id=coupon.id, user_id=user.id))
            db.session.commit()
            return check

        monkeypatch.setattr(order_service, "validate_coupon", validate_then_redeem_elsewhere)
        result = place_order(cart, user.id, coupon=applied, now=NOW)

        assert result.error == "Você já usou este cupom"
        assert Order.query.count() == 0
        assert cart.get_total_items() == 3

    def test_other_integrity_errors_keep_generic_message(self, cart, user, make_coupon, monkeypatch) -> None:
        make_coupon()
        applied = AppliedCoupon()
        assert applied.apply_coupon("DESC20", cart.get_total_price(), user_id=user.id, now=NOW).valid

        def fk_failure(*a, **kw):
            raise IntegrityError("INSERT INTO coupon_uses", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(order_service, "record_coupon_use", fk_failure)
        result = place_order(cart, user.id, coupon=applied, now=NOW)

        assert result.error == "Erro ao criar pedido"
        assert Order.query.count() == 0
        assert applied.is_applied

    def test_points_failure_does_not_fail_order(self, cart, user, monkeypatch) -> None:
        def boom(*a, **kw):
            raise OperationalError("rpc", {}, Exception("add_user_points unavailable"))

        monkeypatch.setattr(points_service, "add_user_points", boom)
        ledger = LoyaltyLedger(user.id)
        result = place_order(cart, user.id, delivery_fee=5, ledger=ledger)
        assert result.success
        assert result.points_earned == 0
        assert ledger.points == 0
        assert Order.query.count() == 1
        assert cart.items == ()

    def test_order_insert_failure_keeps_cart(self, cart, user, monkeypatch) -> None:
        def boom():
            raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db.session, "flush", boom)
        result = place_order(cart, user.id)
        assert not result.success
        assert "disk I/O error" in result.error
        assert cart.get_total_items() == 3


def products_a_id(cart):
    return next(i.product_id for i in cart.items if i.quantity == 2)


class TestOrderTotal:
    def test_discount_never_touches_delivery_fee(self) -> None:
        assert order_total(Decimal("10"), Decimal("10"), Decimal("5")) == Decimal("5.00")

    def test_rounds_to_cents(self) -> None:
        assert order_total(Decimal("15.47"), Decimal("3.094"), 0) == Decimal("12.38")


class TestChangeStatus:
    def _order(self, user, status="pending"):
        o = Order(user_id=user.id, status=status, total=Decimal("10"))
        db.session.add(o)
        db.session.commit()
        return o

    def test_happy_path(self, user) -> None:
        o = self._order(user)
        for status in ("confirmed", "preparing", "delivering", "delivered"):
            change_status(o, status)
        assert o.status == "delivered"

    def test_cancel_before_delivery(self, user) -> None:
        o = self._order(user, "preparing")
        change_status(o, "cancelled")
        assert o.status == "cancelled"

    def test_cannot_cancel_delivered(self, user) -> None:
        o = self._order(user, "delivered")
        with pytest.raises(ValueError, match="cannot change"):
            change_status(o, "cancelled")

    def test_unknown_status(self, user) -> None:
        with pytest.raises(ValueError, match="unknown status"):
            change_status(self._order(user), "lost")
