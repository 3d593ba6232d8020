from flask import Blueprint

bp = Blueprint("validation", __name__, url_prefix="/validate")

from . import routes  # noqa: E402,F401
