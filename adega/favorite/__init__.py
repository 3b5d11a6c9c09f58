from flask import Blueprint

bp = Blueprint("favorite", __name__, url_prefix="/api/favorites")

from . import routes  # noqa: E402,F401
