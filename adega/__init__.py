import logging
from flask import Flask, jsonify
from .config import Config
from .extensions import db, jwt, cors, migrate

def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)
    app.config["MAX_CONTENT_LENGTH"] = 5 * 1024 * 1024

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("adega").setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}}, expose_headers=["X-Cart-Id", "X-Order-Id"])
    migrate.init_app(app, db)

    # Per-app state
    from .cart.store import CartRegistry
    from .services.coupon_service import AppliedCoupon
    from .services.settings_service import SettingsCache, load_store_settings
    app.extensions["carts"] = CartRegistry(coupon_factory=AppliedCoupon, idle_ttl=app.config["CART_IDLE_TTL"])
    app.extensions["settings_cache"] = SettingsCache(load_store_settings, ttl=app.config["STORE_SETTINGS_TTL"])

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .points import bp as points_bp; app.register_blueprint(points_bp)
    from .favorite import bp as favorite_bp; app.register_blueprint(favorite_bp)
    from .settings import bp as settings_bp; app.register_blueprint(settings_bp)

    from .utils.api import register_error_handlers
    register_error_handlers(app)
    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()
        app.logger.debug("blueprints: %s", sorted(app.blueprints.keys()))

    return app
