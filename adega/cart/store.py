# adega/cart/store.py
"""In-memory shopping cart.

The cart is a pure reduction ``(state, action) -> state`` wrapped in a small
observable store. Lines are keyed by product id and never hold a quantity
below 1: an update to 0 (or less) removes the line in the same reduction.
Nothing here touches the database; a cart lives as long as its session.
"""
from __future__ import annotations
import threading
import time
import uuid as _uuid
from dataclasses import dataclass, replace, field
from decimal import Decimal
from typing import Callable

from ..utils.money import D, ZERO
from ..utils.notify import Notifier


@dataclass(frozen=True)
class CartLine:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    image: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def as_api(self):
        return {
            "product_id": self.product_id,
            "name": self.name,
            "image": self.image,
            "unit_price": float(self.unit_price),
            "quantity": self.quantity,
            "line_total": float(self.line_total),
        }


@dataclass(frozen=True)
class CartState:
    items: tuple[CartLine, ...] = ()

    def find(self, product_id) -> CartLine | None:
        return next((i for i in self.items if i.product_id == product_id), None)


# ---- actions ---------------------------------------------------------------

@dataclass(frozen=True)
class AddItem:
    line: CartLine

@dataclass(frozen=True)
class RemoveItem:
    product_id: str

@dataclass(frozen=True)
class UpdateQuantity:
    product_id: str
    quantity: int

@dataclass(frozen=True)
class ClearCart:
    pass


def reduce_cart(state: CartState, action) -> CartState:
    if isinstance(action, AddItem):
        pid = action.line.product_id
        if state.find(pid):
            return CartState(tuple(
                replace(i, quantity=i.quantity + 1) if i.product_id == pid else i
                for i in state.items
            ))
        return CartState(state.items + (replace(action.line, quantity=1),))

    if isinstance(action, RemoveItem):
        return CartState(tuple(i for i in state.items if i.product_id != action.product_id))

    if isinstance(action, UpdateQuantity):
        qty = max(0, int(action.quantity))
        updated = (
            replace(i, quantity=qty) if i.product_id == action.product_id else i
            for i in state.items
        )
        return CartState(tuple(i for i in updated if i.quantity > 0))

    if isinstance(action, ClearCart):
        return CartState()

    return state


def line_from_product(product) -> CartLine:
    """Build a cart line from a Product row (or any object with the same fields)."""
    return CartLine(
        product_id=str(product.id),
        name=product.name,
        unit_price=D(product.price),
        image=getattr(product, "image_url", None),
    )


class CartStore:
    def __init__(self, notifier: Notifier | None = None):
        self._state = CartState()
        self._listeners: list[Callable[[CartState], None]] = []
        self.notifier = notifier or Notifier()

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> tuple[CartLine, ...]:
        return self._state.items

    def subscribe(self, listener: Callable[[CartState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def dispatch(self, action) -> CartState:
        new_state = reduce_cart(self._state, action)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    # ---- operations --------------------------------------------------------

    def add_item(self, product):
        line = product if isinstance(product, CartLine) else line_from_product(product)
        self.dispatch(AddItem(line))
        self.notifier.notify("Produto adicionado!", f"{line.name} foi adicionado ao carrinho.")

    def remove_item(self, product_id):
        item = self._state.find(product_id)
        self.dispatch(RemoveItem(product_id))
        if item:
            self.notifier.notify("Produto removido", f"{item.name} foi removido do carrinho.")

    def update_quantity(self, product_id, quantity: int):
        self.dispatch(UpdateQuantity(product_id, quantity))

    def clear_cart(self):
        self.dispatch(ClearCart())

    def get_total_items(self) -> int:
        return sum(i.quantity for i in self._state.items)

    def get_total_price(self) -> Decimal:
        return sum((i.line_total for i in self._state.items), ZERO)

    def as_api(self):
        return {
            "items": [i.as_api() for i in self._state.items],
            "total_items": self.get_total_items(),
            "subtotal": float(self.get_total_price()),
        }


@dataclass
class CartSession:
    """Everything the storefront keeps per shopper: the cart and the applied coupon."""
    key: str
    cart: CartStore
    coupon: object = None
    lock: threading.RLock = field(default_factory=threading.RLock)
    touched: float = 0.0


class CartRegistry:
    """
    Process-local carts keyed by user id or anonymous cart id.

    Sessions untouched for ``idle_ttl`` seconds are dropped; the sweep runs
    from ``get``/``peek`` at most once per ``sweep_every`` seconds.
    """

    def __init__(self, coupon_factory: Callable[[], object] | None = None, idle_ttl: float | None = None,
                 clock: Callable[[], float] = time.monotonic, sweep_every: float = 60):
        self._sessions: dict[str, CartSession] = {}
        self._lock = threading.Lock()
        self._coupon_factory = coupon_factory
        self.idle_ttl = idle_ttl
        self._clock = clock
        self._sweep_every = sweep_every
        self._next_sweep = 0.0

    def _new(self, key: str) -> CartSession:
        coupon = self._coupon_factory() if self._coupon_factory else None
        return CartSession(key=key, cart=CartStore(), coupon=coupon, touched=self._clock())

    def _sweep(self, now: float):
        if not self.idle_ttl or now < self._next_sweep:
            return
        self._next_sweep = now + min(self._sweep_every, self.idle_ttl)
        stale = [k for k, s in self._sessions.items() if now - s.touched >= self.idle_ttl]
        for k in stale:
            del self._sessions[k]

    def get(self, key: str | None) -> CartSession:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            if not key:
                key = str(_uuid.uuid4())
            session = self._sessions.get(key)
            if session is None:
                session = self._new(key)
                self._sessions[key] = session
            session.touched = now
            return session

    def peek(self, key: str | None) -> CartSession | None:
        """Existing session for ``key`` or None; never creates one."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            session = self._sessions.get(key) if key else None
            if session is not None:
                session.touched = now
            return session

    def blank(self) -> CartSession:
        """An empty, unregistered session for read-only views."""
        return self._new("")

    def merge(self, source_key: str, target_key: str) -> CartSession:
        """
        Move the lines of ``source_key`` into ``target_key`` and drop the source.
        Quantities of products present in both carts are summed. The source's
        applied coupon is carried over only when the target has none.
        """
        target = self.get(target_key)
        if not source_key or source_key == target_key:
            return target
        with self._lock:
            source = self._sessions.pop(source_key, None)
        if source is None:
            return target

        with target.lock, source.lock:
            for line in source.cart.items:
                current = target.cart.state.find(line.product_id)
                if current is None:
                    target.cart.dispatch(AddItem(line))
                    quantity = line.quantity
                else:
                    quantity = current.quantity + line.quantity
                target.cart.dispatch(UpdateQuantity(line.product_id, quantity))
            if getattr(source.coupon, "is_applied", False) and not getattr(target.coupon, "is_applied", False):
                target.coupon = source.coupon
        return target

    def discard(self, key: str):
        with self._lock:
            self._sessions.pop(key, None)

    def __len__(self):
        return len(self._sessions)
