# --- adega/model/coupon.py ---
import uuid as _uuid
from sqlalchemy.sql import func
from ..extensions import db

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)

class Coupon(db.Model):
    __tablename__ = "coupons"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(_uuid.uuid4()))
    # stored canonical: trimmed + uppercase
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)

    # "percentage" or "fixed"
    discount_type = db.Column(db.String(16), nullable=False, default=PERCENTAGE)
    discount_value = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True, index=True)

    # Optional constraints
    minimum_order_value = db.Column(db.Numeric(10, 2), nullable=True)  # require subtotal >= this
    max_uses = db.Column(db.Integer, nullable=True)                    # global usage cap
    current_uses = db.Column(db.Integer, nullable=False, default=0)
    valid_from = db.Column(db.Date, nullable=True)                     # inclusive, from 00:00
    valid_until = db.Column(db.Date, nullable=True)                    # inclusive, until 23:59:59.999

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    uses = db.relationship("CouponUse", back_populates="coupon", lazy="selectin")

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value or 0),
            "minimum_order_value": float(self.minimum_order_value) if self.minimum_order_value is not None else None,
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "is_active": self.is_active,
        }

class CouponUse(db.Model):
    __tablename__ = "coupon_uses"
    # one redemption per user per coupon
    __table_args__ = (db.UniqueConstraint("coupon_id", "user_id", name="uq_coupon_uses_coupon_user"),)

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.String(36), db.ForeignKey("coupons.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), index=True, nullable=True)
    used_at = db.Column(db.DateTime, server_default=func.now())

    coupon = db.relationship("Coupon", back_populates="uses")
