# ------ adega/model/__init__.py ------

from .user import User, UserRole
from .product import Product
from .coupon import Coupon, CouponUse
from .order import Order, OrderItem
from .points import UserPoints, PointsHistory
from .favorite import UserFavorite
from .settings import StoreSettings

__all__ = [
    "User",
    "UserRole",
    "Product",
    "Coupon",
    "CouponUse",
    "Order",
    "OrderItem",
    "UserPoints",
    "PointsHistory",
    "UserFavorite",
    "StoreSettings",
]
