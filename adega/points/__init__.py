from flask import Blueprint

bp = Blueprint("points", __name__, url_prefix="/api/points")

from . import routes  # noqa: E402,F401
