#  --- adega/model/favorite.py ---
from sqlalchemy.sql import func
from ..extensions import db

class UserFavorite(db.Model):
    __tablename__ = "user_favorites"
    __table_args__ = (db.UniqueConstraint("user_id", "product_id", name="uq_user_favorites_user_product"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=func.now())
