from datetime import date, timedelta
from decimal import Decimal
from adega import create_app
from adega.extensions import db
from adega.model import Product, Coupon, StoreSettings

# Create an app instance
app = create_app()

sample_products = [
    {"name": "Heineken Long Neck 330ml", "price": Decimal("7.49"), "category": "cerveja", "brand": "Heineken", "volume": "330ml", "rating": 4.7, "reviews": 210},
    {"name": "Brahma Duplo Malte Lata 350ml", "price": Decimal("3.99"), "category": "cerveja", "brand": "Brahma", "volume": "350ml", "rating": 4.3, "reviews": 98},
    {"name": "Original 600ml", "price": Decimal("9.90"), "category": "cerveja", "brand": "Antarctica", "volume": "600ml", "rating": 4.6, "reviews": 154},
    {"name": "Vinho Tinto Casillero del Diablo Cabernet 750ml", "price": Decimal("54.90"), "original_price": Decimal("64.90"), "discount": 15, "category": "vinho", "brand": "Concha y Toro", "volume": "750ml", "rating": 4.5, "reviews": 61},
    {"name": "Vodka Absolut 1L", "price": Decimal("89.90"), "category": "destilado", "brand": "Absolut", "volume": "1L", "rating": 4.8, "reviews": 87},
    {"name": "Gin Tanqueray 750ml", "price": Decimal("119.90"), "category": "destilado", "brand": "Tanqueray", "volume": "750ml", "rating": 4.9, "reviews": 45, "is_new": True},
    {"name": "Gelo em Cubos 5kg", "price": Decimal("14.00"), "category": "outros", "brand": "Adega", "volume": "5kg", "rating": 4.4, "reviews": 30},
]

with app.app_context():
    for data in sample_products:
        db.session.add(Product(**data))

    if not StoreSettings.query.first():
        db.session.add(StoreSettings(
            store_name="Adega Delivery",
            minimum_order_value=Decimal("30.00"),
            delivery_fee=Decimal("5.99"),
            free_delivery_threshold=Decimal("150.00"),
            delivery_city="São Paulo",
            delivery_state="SP",
        ))

    if not Coupon.query.filter_by(code="BEMVINDO10").first():
        db.session.add(Coupon(
            code="BEMVINDO10",
            description="10% na primeira compra",
            discount_type="percentage",
            discount_value=Decimal("10"),
            minimum_order_value=Decimal("40.00"),
            valid_until=date.today() + timedelta(days=90),
        ))

    db.session.commit()

print(f"{len(sample_products)} sample products, store settings and a welcome coupon have been added.")
