from flask import request
from sqlalchemy import or_, desc, asc
from ..extensions import db
from ..model import Product
from ..utils.api import ok, err
from ..utils.decorators import admin_required
from ..utils.money import D
from . import bp

# ---------- helpers ----------
def _parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}

def _parse_opt_float(v):
    if v is None: return None
    if isinstance(v, str) and v.strip() == "": return None
    try: return float(v)
    except (TypeError, ValueError): return None

def _sort_products(query, sort):
    sort = (sort or "").strip()
    mapping = {
        "name": asc(Product.name), "-name": desc(Product.name),
        "price": asc(Product.price), "-price": desc(Product.price),
        "rating": asc(Product.rating), "-rating": desc(Product.rating),
        "newest": desc(Product.created_at),
    }
    col = mapping.get(sort, asc(Product.name))
    return query.order_by(col, asc(Product.id))

# ---------- routes ----------
# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      q            -> substring match on name/brand
      category     -> exact category
      brand        -> exact brand
      min_price    -> float
      max_price    -> float
      is_new       -> bool
      sort         -> name, -name, price, -price, rating, -rating, newest
      page         -> int, default 1
      per_page     -> int, default 20 (cap 100)
    """
    q = (request.args.get("q") or "").strip()
    category = (request.args.get("category") or "").strip()
    brand = (request.args.get("brand") or "").strip()
    min_price = _parse_opt_float(request.args.get("min_price"))
    max_price = _parse_opt_float(request.args.get("max_price"))
    page = max(request.args.get("page", default=1, type=int), 1)
    per_page = max(1, min(request.args.get("per_page", default=20, type=int), 100))

    query = Product.query.filter(Product.is_active.is_(True))

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.brand.ilike(like)))
    if category:
        query = query.filter(Product.category == category)
    if brand:
        query = query.filter(Product.brand == brand)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if request.args.get("is_new") is not None:
        query = query.filter(Product.is_new.is_(_parse_bool(request.args.get("is_new"))))

    pagination = _sort_products(query, request.args.get("sort")).paginate(page=page, per_page=per_page, error_out=False)

    return ok("Products fetched", {
        "items": [p.as_api() for p in pagination.items],
        "meta": {
            "page": pagination.page,
            "pages": pagination.pages or 1,
            "per_page": per_page,
            "total": pagination.total,
        },
    })

# GET /api/products/<id>
@bp.get("/<pid>")
def get_product(pid):
    product = db.session.get(Product, pid)
    if not product or not product.is_active:
        return err("product not found", 404)
    return ok("Product fetched", product.as_api())

# POST /api/products
@bp.post("")
@admin_required()
def create_product():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    price = _parse_opt_float(data.get("price"))
    if not name:
        return err("name is required", 422)
    if price is None or price < 0:
        return err("price must be a number >= 0", 422)

    product = Product(
        name=name,
        description=data.get("description"),
        price=D(price),
        original_price=D(data["original_price"]) if data.get("original_price") is not None else None,
        discount=data.get("discount"),
        image_url=data.get("image"),
        category=data.get("category"),
        brand=data.get("brand"),
        volume=data.get("volume"),
        is_new=_parse_bool(data.get("is_new")),
        is_active=_parse_bool(data.get("is_active"), True),
    )
    db.session.add(product)
    db.session.commit()
    return ok("Product created", product.as_api(), status=201)
