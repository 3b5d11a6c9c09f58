# adega/model/product.py
import uuid as _uuid
from sqlalchemy.sql import func
from ..extensions import db

class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(_uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text)

    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    original_price = db.Column(db.Numeric(10, 2), nullable=True)   # struck-through price on offers
    discount = db.Column(db.Integer, nullable=True)                 # advertised % off, display only

    image_url = db.Column(db.String(1024))
    category = db.Column(db.String(120), index=True)                # e.g. "cerveja", "vinho", "destilado"
    brand = db.Column(db.String(120), index=True)
    volume = db.Column(db.String(32))                               # e.g. "350ml", "1L"

    rating = db.Column(db.Float, default=0.0)
    reviews = db.Column(db.Integer, default=0)
    is_new = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price or 0),
            "original_price": float(self.original_price) if self.original_price is not None else None,
            "discount": self.discount,
            "image": self.image_url,
            "category": self.category,
            "brand": self.brand,
            "volume": self.volume,
            "rating": self.rating,
            "reviews": self.reviews,
            "is_new": self.is_new,
            "is_active": self.is_active,
        }
