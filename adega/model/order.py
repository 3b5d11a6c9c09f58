import uuid as _uuid
from datetime import datetime
from ..extensions import db

class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(_uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False, index=True)
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)

    payment_method = db.Column(db.String(64))
    shipping_address = db.Column(db.JSON)
    notes = db.Column(db.Text)

    # Money snapshot, fixed at submission
    subtotal = db.Column(db.Numeric(12, 2))
    delivery_fee = db.Column(db.Numeric(12, 2))
    discount_amount = db.Column(db.Numeric(12, 2))
    total = db.Column(db.Numeric(12, 2), nullable=False)
    coupon_id = db.Column(db.String(36), db.ForeignKey("coupons.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    @property
    def short_id(self) -> str:
        return (self.id or "")[:8]

    def as_api(self, with_items=True):
        data = {
            "id": self.id,
            "short_id": self.short_id,
            "user_id": self.user_id,
            "status": self.status,
            "payment_method": self.payment_method,
            "shipping_address": self.shipping_address,
            "notes": self.notes,
            "money": {
                "subtotal": float(self.subtotal or 0),
                "delivery_fee": float(self.delivery_fee or 0),
                "discount": float(self.discount_amount or 0),
                "total": float(self.total or 0),
            },
            "coupon_id": self.coupon_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_items:
            data["items"] = [i.as_api() for i in self.items]
        return data

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(db.String(36), index=True)
    product_name = db.Column(db.String(255))

    # price snapshot at purchase time; independent of later catalogue changes
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "name": self.product_name,
            "unit_price": float(self.unit_price or 0),
            "quantity": self.quantity,
            "total_price": float(self.total_price or 0),
        }
