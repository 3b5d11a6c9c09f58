import os
from datetime import timedelta

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    JSON_AS_ASCII = False
    ENV = os.getenv("FLASK_ENV", "development")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # store settings are re-read from the database after this many seconds
    STORE_SETTINGS_TTL = int(os.getenv("STORE_SETTINGS_TTL", "300"))
    EXPRESS_DELIVERY_EXTRA = os.getenv("EXPRESS_DELIVERY_EXTRA", "7.00")
    DEFAULT_MINIMUM_ORDER = os.getenv("DEFAULT_MINIMUM_ORDER", "30.00")
    # carts nobody touched for this many seconds are dropped
    CART_IDLE_TTL = int(os.getenv("CART_IDLE_TTL", str(2 * 24 * 3600)))

    @staticmethod
    def init_app(app):
        if app.config.get("SQLALCHEMY_DATABASE_URI"):
            return
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'adega.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-with-enough-bytes-for-hs256"
    STORE_SETTINGS_TTL = 300
