from flask import jsonify
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..model import Product, UserFavorite
from ..utils.api import ok, err, api_error
from ..utils.decorators import current_user_id
from ..utils.notify import Notifier
from . import bp

def _login_required_response():
    n = Notifier()
    n.error("Login necessário", "Você precisa estar logado para favoritar produtos.")
    r = jsonify(api_error("Login necessário", {"notices": n.drain()}))
    r.status_code = 401
    return r

@bp.get("")
def list_favorites():
    uid = current_user_id()
    if not uid:
        return ok("favorites", [])
    rows = UserFavorite.query.filter_by(user_id=uid).order_by(UserFavorite.created_at.desc()).all()
    return ok("favorites", [r.product_id for r in rows])

@bp.post("/<product_id>/toggle")
def toggle_favorite(product_id: str):
    uid = current_user_id()
    if not uid:
        return _login_required_response()
    if not db.session.get(Product, product_id):
        return err("product not found", 404)

    n = Notifier()
    fav = UserFavorite.query.filter_by(user_id=uid, product_id=product_id).first()
    if fav:
        db.session.delete(fav)
        db.session.commit()
        n.notify("Removido dos favoritos", "Produto removido da sua lista de favoritos.")
        return ok("favorite removed", {"product_id": product_id, "favorite": False, "notices": n.drain()})

    db.session.add(UserFavorite(user_id=uid, product_id=product_id))
    try:
        db.session.commit()
    except IntegrityError:
        # double click; already a favorite
        db.session.rollback()
    n.notify("Adicionado aos favoritos", "Produto adicionado à sua lista de favoritos.")
    return ok("favorite added", {"product_id": product_id, "favorite": True, "notices": n.drain()}, status=201)
