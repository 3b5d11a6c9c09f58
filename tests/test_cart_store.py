"""Tests for the in-memory cart reducer and store."""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from adega.cart.store import (
    AddItem,
    CartLine,
    CartRegistry,
    CartState,
    CartStore,
    ClearCart,
    RemoveItem,
    UpdateQuantity,
    reduce_cart,
)

A = CartLine("a", "Brahma Lata 350ml", Decimal("3.99"))
B = CartLine("b", "Heineken Long Neck", Decimal("7.49"))
C = CartLine("c", "Gelo 5kg", Decimal("14.00"))


class TestReduceCart:
    def test_add_new_line_starts_at_one(self) -> None:
        state = reduce_cart(CartState(), AddItem(A))
        assert state.items == (A,)
        assert state.items[0].quantity == 1

    def test_add_existing_line_increments(self) -> None:
        state = reduce_cart(reduce_cart(CartState(), AddItem(A)), AddItem(A))
        assert len(state.items) == 1
        assert state.items[0].quantity == 2

    def test_add_ignores_quantity_on_incoming_line(self) -> None:
        line = CartLine("a", "Brahma", Decimal("3.99"), quantity=5)
        state = reduce_cart(CartState(), AddItem(line))
        assert state.items[0].quantity == 1

    def test_remove(self) -> None:
        state = CartState((A, B))
        assert reduce_cart(state, RemoveItem("a")).items == (B,)

    def test_remove_absent_is_noop(self) -> None:
        state = CartState((A,))
        assert reduce_cart(state, RemoveItem("zzz")).items == (A,)

    def test_update_sets_quantity(self) -> None:
        state = reduce_cart(CartState((A, B)), UpdateQuantity("b", 4))
        assert state.find("b").quantity == 4
        assert state.find("a").quantity == 1

    @pytest.mark.parametrize("qty", [0, -1, -50])
    def test_update_to_zero_or_less_removes_line(self, qty: int) -> None:
        state = reduce_cart(CartState((A, B)), UpdateQuantity("a", qty))
        assert state.items == (B,)

    def test_clear(self) -> None:
        assert reduce_cart(CartState((A, B)), ClearCart()).items == ()

    def test_unknown_action_returns_same_state(self) -> None:
        state = CartState((A,))
        assert reduce_cart(state, object()) is state

    def test_random_sequences_never_hold_non_positive_lines(self) -> None:
        rng = random.Random(1234)
        lines = [A, B, C]
        state = CartState()
        for _ in range(500):
            line = rng.choice(lines)
            action = rng.choice([
                AddItem(line),
                RemoveItem(line.product_id),
                UpdateQuantity(line.product_id, rng.randint(-3, 6)),
            ])
            state = reduce_cart(state, action)
            assert all(i.quantity >= 1 for i in state.items)
            assert len({i.product_id for i in state.items}) == len(state.items)


class TestCartStore:
    def test_totals(self) -> None:
        store = CartStore()
        store.add_item(A)
        store.add_item(A)
        store.add_item(B)
        assert store.get_total_items() == 3
        assert store.get_total_price() == Decimal("15.47")

    def test_total_price_matches_lines(self) -> None:
        store = CartStore()
        for line in (A, B, C, B):
            store.add_item(line)
        store.update_quantity("c", 3)
        expected = sum((i.unit_price * i.quantity for i in store.items), Decimal("0"))
        assert store.get_total_price() == expected

    def test_add_emits_notice(self) -> None:
        store = CartStore()
        store.add_item(A)
        notices = store.notifier.drain()
        assert notices[0]["title"] == "Produto adicionado!"
        assert "Brahma Lata 350ml" in notices[0]["description"]

    def test_remove_absent_emits_nothing(self) -> None:
        store = CartStore()
        store.remove_item("nope")
        assert store.notifier.drain() == []

    def test_remove_present_emits_notice(self) -> None:
        store = CartStore()
        store.add_item(A)
        store.notifier.drain()
        store.remove_item("a")
        assert store.notifier.drain()[0]["title"] == "Produto removido"

    def test_subscribers_see_changes(self) -> None:
        store = CartStore()
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(len(s.items)))
        store.add_item(A)
        store.add_item(B)
        unsubscribe()
        store.clear_cart()
        assert seen == [1, 2]

    def test_accepts_product_like_objects(self) -> None:
        class P:
            id = "p1"
            name = "Vodka 1L"
            price = 89.9
            image_url = None

        store = CartStore()
        store.add_item(P())
        assert store.items[0].unit_price == Decimal("89.9")


class TestCartRegistry:
    def test_same_key_same_session(self) -> None:
        reg = CartRegistry()
        assert reg.get("user:1") is reg.get("user:1")

    def test_missing_key_issues_new_session(self) -> None:
        reg = CartRegistry()
        s1, s2 = reg.get(None), reg.get(None)
        assert s1.key != s2.key
        assert len(reg) == 2

    def test_coupon_factory(self) -> None:
        reg = CartRegistry(coupon_factory=dict)
        assert reg.get("k").coupon == {}

    def test_peek_never_creates(self) -> None:
        reg = CartRegistry()
        assert reg.peek("nope") is None
        assert reg.peek(None) is None
        assert len(reg) == 0

    def test_blank_is_not_registered(self) -> None:
        reg = CartRegistry(coupon_factory=dict)
        blank = reg.blank()
        assert blank.cart.items == ()
        assert blank.coupon == {}
        assert len(reg) == 0

    def test_idle_sessions_are_evicted(self) -> None:
        clock = _Clock()
        reg = CartRegistry(idle_ttl=100, clock=clock)
        reg.get("old")
        clock.now += 101
        reg.get("new")
        assert reg.peek("old") is None
        assert len(reg) == 1

    def test_touch_keeps_session_alive(self) -> None:
        clock = _Clock()
        reg = CartRegistry(idle_ttl=100, clock=clock)
        session = reg.get("a")
        clock.now += 50
        reg.peek("a")
        clock.now += 70
        reg.get("b")
        assert reg.peek("a") is session

    def test_merge_sums_quantities_and_drops_source(self) -> None:
        reg = CartRegistry()
        user = reg.get("user:1")
        user.cart.add_item(A)
        anon = reg.get("anon")
        anon.cart.add_item(A)
        anon.cart.add_item(A)
        anon.cart.add_item(B)

        merged = reg.merge("anon", "user:1")

        assert merged is user
        assert {i.product_id: i.quantity for i in merged.cart.items} == {"a": 3, "b": 1}
        assert reg.peek("anon") is None

    def test_merge_carries_coupon_only_into_couponless_cart(self) -> None:
        reg = CartRegistry(coupon_factory=_Coupon)
        reg.get("anon").coupon = _Coupon(applied=True, code="DESC20")
        assert reg.merge("anon", "user:1").coupon.code == "DESC20"

        reg.get("anon2").coupon = _Coupon(applied=True, code="OUTRO")
        assert reg.merge("anon2", "user:1").coupon.code == "DESC20"

    def test_merge_unknown_source(self) -> None:
        reg = CartRegistry()
        session = reg.merge("gone", "user:1")
        assert session is reg.get("user:1")
        assert session.cart.items == ()


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _Coupon:
    def __init__(self, applied=False, code=None) -> None:
        self.is_applied = applied
        self.code = code
