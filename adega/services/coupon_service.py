# adega/services/coupon_service.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..model import Coupon, CouponUse
from ..model.coupon import PERCENTAGE, DISCOUNT_TYPES
from ..utils.money import D, ZERO, format_brl

logger = logging.getLogger(__name__)

ERR_EMPTY = "Digite um código de cupom"
ERR_NOT_FOUND = "Cupom não encontrado"
ERR_EXPIRED = "Cupom expirado"
ERR_NOT_STARTED = "Cupom ainda não está válido"
ERR_EXHAUSTED = "Cupom esgotado"
ERR_ALREADY_USED = "Você já usou este cupom"
ERR_BACKEND = "Erro ao validar cupom"

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass
class CouponValidation:
    valid: bool
    coupon: Coupon | None = None
    discount: Decimal | None = None
    error: str | None = None

    def as_api(self):
        return {
            "valid": self.valid,
            "coupon": self.coupon.as_api() if self.coupon else None,
            "discount": float(self.discount) if self.discount is not None else None,
            "error": self.error,
        }


def normalize_code(code) -> str:
    return (code or "").strip().upper()

def _as_date(v) -> date:
    return v.date() if isinstance(v, datetime) else v

def compute_discount(discount_type: str, discount_value, subtotal) -> Decimal:
    """Percentage or fixed discount, never more than the subtotal."""
    subtotal = D(subtotal)
    if discount_type == PERCENTAGE:
        discount = subtotal * D(discount_value) / Decimal(100)
    else:
        discount = D(discount_value)
    return min(discount, subtotal)

def has_used_coupon(coupon_id, user_id) -> bool:
    return db.session.query(CouponUse.id).filter_by(coupon_id=coupon_id, user_id=user_id).first() is not None

def validate_coupon(code, subtotal, user_id=None, now: datetime | None = None) -> CouponValidation:
    """
    Checks, first failure wins:
      1) non-empty code
      2) active coupon with that (normalized) code exists
      3) not past valid_until (end of that day)
      4) not before valid_from (start of that day)
      5) usage cap not reached
      6) subtotal meets minimum_order_value
      7) caller has not redeemed it before
    then computes the discount.
    """
    code = normalize_code(code)
    if not code:
        return CouponValidation(False, error=ERR_EMPTY)

    now = now or datetime.now()
    subtotal = D(subtotal)

    try:
        coupon = Coupon.query.filter(Coupon.code == code, Coupon.is_active.is_(True)).first()
        if not coupon:
            return CouponValidation(False, error=ERR_NOT_FOUND)

        if coupon.valid_until and datetime.combine(_as_date(coupon.valid_until), END_OF_DAY) < now:
            return CouponValidation(False, error=ERR_EXPIRED)

        if coupon.valid_from and datetime.combine(_as_date(coupon.valid_from), time.min) > now:
            return CouponValidation(False, error=ERR_NOT_STARTED)

        if coupon.max_uses is not None and (coupon.current_uses or 0) >= coupon.max_uses:
            return CouponValidation(False, error=ERR_EXHAUSTED)

        if coupon.minimum_order_value and subtotal < D(coupon.minimum_order_value):
            return CouponValidation(
                False, error=f"Pedido mínimo de {format_brl(coupon.minimum_order_value)} para este cupom"
            )

        if user_id and has_used_coupon(coupon.id, user_id):
            return CouponValidation(False, error=ERR_ALREADY_USED)

    except SQLAlchemyError:
        logger.exception("Error validating coupon %s", code)
        db.session.rollback()
        return CouponValidation(False, error=ERR_BACKEND)

    discount = compute_discount(coupon.discount_type, coupon.discount_value, subtotal)
    return CouponValidation(True, coupon=coupon, discount=discount)


def record_coupon_use(coupon_id, user_id, order_id, commit=True):
    """
    Insert the CouponUse row and bump current_uses by exactly one.
    With commit=False the caller owns the transaction (order submission does this).
    """
    db.session.add(CouponUse(coupon_id=coupon_id, user_id=user_id, order_id=order_id))
    db.session.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id)
        .values(current_uses=Coupon.current_uses + 1)
    )
    if commit:
        db.session.commit()
    else:
        db.session.flush()


class AppliedCoupon:
    """Coupon currently applied to a shopper's cart."""

    def __init__(self):
        self.coupon_id: str | None = None
        self.code: str | None = None
        self.discount_type: str | None = None
        self.discount_value: Decimal | None = None
        self.discount: Decimal = ZERO

    @property
    def is_applied(self) -> bool:
        return self.coupon_id is not None

    def apply_coupon(self, code, subtotal, user_id=None, now=None) -> CouponValidation:
        result = validate_coupon(code, subtotal, user_id=user_id, now=now)
        if result.valid:
            c = result.coupon
            self.coupon_id = c.id
            self.code = c.code
            self.discount_type = c.discount_type
            self.discount_value = D(c.discount_value)
            self.discount = result.discount
        return result

    def remove_coupon(self):
        self.coupon_id = None
        self.code = None
        self.discount_type = None
        self.discount_value = None
        self.discount = ZERO

    def recalculate_discount(self, subtotal) -> Decimal:
        # formula only; expiry, caps and minimum are re-checked at submission
        if not self.is_applied:
            return ZERO
        self.discount = compute_discount(self.discount_type, self.discount_value, subtotal)
        return self.discount

    def as_api(self):
        if not self.is_applied:
            return None
        return {
            "id": self.coupon_id,
            "code": self.code,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value),
            "discount": float(self.discount),
        }


# ---- admin ---------------------------------------------------------------

def _parse_date(s):
    if not s:
        return None
    if isinstance(s, date):
        return _as_date(s)
    s = str(s).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        raise ValueError(f"Invalid date: {s}")

def _parse_opt_money(v, field):
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        return D(v)
    except Exception:
        raise ValueError(f"{field} must be numeric")

def create_coupon_from_payload(data: dict) -> Coupon:
    """Raises ValueError on invalid input; the app maps it to 422."""
    code = normalize_code(data.get("code"))
    discount_type = (data.get("discount_type") or PERCENTAGE).lower().strip()
    value = _parse_opt_money(data.get("discount_value"), "discount_value") or ZERO

    if not code:
        raise ValueError("code is required")
    if discount_type not in DISCOUNT_TYPES:
        raise ValueError("discount_type must be 'percentage' or 'fixed'")
    if value <= 0:
        raise ValueError("discount_value must be > 0")
    if discount_type == PERCENTAGE and value > 100:
        raise ValueError("percentage coupon must be ≤ 100")

    max_uses = data.get("max_uses")
    if max_uses is not None:
        max_uses = int(max_uses)
        if max_uses < 0:
            raise ValueError("max_uses must be >= 0")

    valid_from = _parse_date(data.get("valid_from"))
    valid_until = _parse_date(data.get("valid_until"))
    if valid_from and valid_until and valid_until < valid_from:
        raise ValueError("valid_until must not be before valid_from")

    # unique case-insensitive
    existing = Coupon.query.filter(func.upper(Coupon.code) == code).first()
    if existing:
        raise ValueError("Coupon code already exists")

    c = Coupon(
        code=code,
        description=data.get("description"),
        discount_type=discount_type,
        discount_value=value,
        minimum_order_value=_parse_opt_money(data.get("minimum_order_value"), "minimum_order_value"),
        max_uses=max_uses,
        current_uses=0,
        valid_from=valid_from,
        valid_until=valid_until,
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(c)
    db.session.commit()
    logger.info("coupon %s created (%s %s)", c.code, c.discount_type, c.discount_value)
    return c
