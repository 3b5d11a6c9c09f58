# adega/model/settings.py
from sqlalchemy.sql import func
from ..extensions import db

class StoreSettings(db.Model):
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True)
    store_name = db.Column(db.String(180), nullable=False, default="Adega")
    store_description = db.Column(db.Text)
    store_logo_url = db.Column(db.String(1024))

    phone = db.Column(db.String(50))
    whatsapp = db.Column(db.String(50))
    email = db.Column(db.String(255))
    address = db.Column(db.String(255))
    opening_hours = db.Column(db.JSON)

    # money
    minimum_order_value = db.Column(db.Numeric(10, 2), nullable=True)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=True)
    free_delivery_threshold = db.Column(db.Numeric(10, 2), nullable=True)

    delivery_cep = db.Column(db.String(16))
    delivery_city = db.Column(db.String(120))
    delivery_state = db.Column(db.String(2))

    instagram_url = db.Column(db.String(255))
    facebook_url = db.Column(db.String(255))
    show_age_restriction = db.Column(db.Boolean, default=True)

    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    EDITABLE = (
        "store_name", "store_description", "store_logo_url", "phone", "whatsapp", "email",
        "address", "opening_hours", "minimum_order_value", "delivery_fee",
        "free_delivery_threshold", "delivery_cep", "delivery_city", "delivery_state",
        "instagram_url", "facebook_url", "show_age_restriction",
    )

    def as_api(self):
        def _f(v):
            return float(v) if v is not None else None
        return {
            "id": self.id,
            "store_name": self.store_name,
            "store_description": self.store_description,
            "store_logo_url": self.store_logo_url,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "email": self.email,
            "address": self.address,
            "opening_hours": self.opening_hours,
            "minimum_order_value": _f(self.minimum_order_value),
            "delivery_fee": _f(self.delivery_fee),
            "free_delivery_threshold": _f(self.free_delivery_threshold),
            "delivery_cep": self.delivery_cep,
            "delivery_city": self.delivery_city,
            "delivery_state": self.delivery_state,
            "instagram_url": self.instagram_url,
            "facebook_url": self.facebook_url,
            "show_age_restriction": self.show_age_restriction,
        }
