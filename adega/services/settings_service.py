# adega/services/settings_service.py
from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable

from flask import current_app

from ..extensions import db
from ..model import StoreSettings
from ..utils.money import D, ZERO, round_money

logger = logging.getLogger(__name__)

EXPRESS = "express"


class SettingsCache:
    """
    Holds the store settings for ``ttl`` seconds. One instance per app
    (``app.extensions["settings_cache"]``); admins call ``invalidate()`` after
    editing settings.
    """

    def __init__(self, loader: Callable[[], object], ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self._loader = loader
        self.ttl = ttl
        self._clock = clock
        self._value = None
        self._stamp = None
        self._lock = threading.Lock()

    def _fresh(self) -> bool:
        return self._value is not None and self._stamp is not None and self._clock() - self._stamp < self.ttl

    def get(self):
        with self._lock:
            if self._fresh():
                return self._value
        return self.refresh()

    def refresh(self):
        value = self._loader()
        with self._lock:
            # an empty table is not cached, so the next call retries
            if value is not None:
                self._value = value
                self._stamp = self._clock()
            else:
                self._value = None
                self._stamp = None
        return value

    def invalidate(self):
        with self._lock:
            self._value = None
            self._stamp = None


def load_store_settings() -> dict | None:
    row = StoreSettings.query.order_by(StoreSettings.id.asc()).first()
    return row.as_api() if row else None

def get_settings_cache() -> SettingsCache:
    return current_app.extensions["settings_cache"]

def update_store_settings(data: dict) -> StoreSettings:
    for key in ("minimum_order_value", "delivery_fee", "free_delivery_threshold"):
        v = data.get(key)
        if v is None:
            continue
        try:
            amount = D(v)
        except InvalidOperation:
            raise ValueError(f"{key} must be numeric")
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"{key} must be >= 0")

    row = StoreSettings.query.order_by(StoreSettings.id.asc()).first()
    if row is None:
        row = StoreSettings()
        db.session.add(row)
    for key in StoreSettings.EDITABLE:
        if key in data:
            setattr(row, key, data[key])
    db.session.commit()
    get_settings_cache().invalidate()
    logger.info("store settings updated: %s", sorted(k for k in data if k in StoreSettings.EDITABLE))
    return row


@dataclass
class DeliveryQuote:
    delivery_fee: Decimal
    free_delivery: bool
    minimum_order_value: Decimal
    minimum_met: bool

    def as_api(self):
        return {
            "delivery_fee": float(self.delivery_fee),
            "free_delivery": self.free_delivery,
            "minimum_order_value": float(self.minimum_order_value),
            "minimum_met": self.minimum_met,
        }

def quote_delivery(settings: dict | None, subtotal, delivery_time="standard",
                   express_extra="7.00", default_minimum="30.00") -> DeliveryQuote:
    """Delivery fee for a subtotal: free over the threshold, base fee plus express extra otherwise."""
    settings = settings or {}
    subtotal = D(subtotal)
    base_fee = D(settings.get("delivery_fee"))
    threshold = settings.get("free_delivery_threshold")
    minimum = D(settings.get("minimum_order_value") or default_minimum)

    if threshold and subtotal >= D(threshold):
        fee, free = ZERO, True
    else:
        extra = D(express_extra) if delivery_time == EXPRESS else ZERO
        fee, free = base_fee + extra, False

    return DeliveryQuote(round_money(fee), free, minimum, subtotal >= minimum)
